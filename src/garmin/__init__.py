"""Garmin Health API push integration.

Sub-packages:
    user       — user model, repository interface and the Firestore backend
    backfill   — signed backfill request generation
    converters — push payload to Kafka record conversion
"""
