"""Kafka integration.

Modules:
    admin_service — cached topic list / topic description facade (KafkaAdminService)
    sender        — JSON record publishing (KafkaRecordSender)
"""
