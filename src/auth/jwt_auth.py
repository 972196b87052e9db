"""Authorization checks on a validated Management Portal access token."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.exceptions import HttpForbiddenError

MEASUREMENT_CREATE = "MEASUREMENT.CREATE"


def _scopes(claim: Any) -> frozenset[str]:
    if not claim:
        return frozenset()
    if isinstance(claim, str):
        return frozenset(claim.split())
    return frozenset(str(s) for s in claim)


@dataclass(frozen=True)
class JwtAuth:
    """Claims of a verified access token.

    Attributes:
        user_id:       ``sub`` claim, None when empty.
        claim_project: ``project`` claim, if the token is bound to a project.
        project:       Fallback project when the token has no project claim.
        scopes:        Granted permission scopes (``scope`` claim).
        roles:         ``project:ROLE`` strings.
        sources:       Source ids registered to the user.
        token:         The raw encoded token.
    """

    user_id: str | None = None
    claim_project: str | None = None
    project: str | None = None
    scopes: frozenset[str] = frozenset()
    roles: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    token: str = field(default="", repr=False)
    claims: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_claims(cls, claims: dict[str, Any], token: str = "", project: str | None = None) -> JwtAuth:
        roles = tuple(claims.get("roles") or ())
        claim_project = claims.get("project")
        if claim_project is None and project is None and roles:
            # Management Portal tokens carry "project:ROLE" roles.
            project = roles[0].split(":", 1)[0] or None
        return cls(
            user_id=claims.get("sub") or None,
            claim_project=claim_project,
            scopes=_scopes(claims.get("scope")),
            roles=roles,
            sources=tuple(claims.get("sources") or ()),
            token=token,
            project=project,
            claims=dict(claims),
        )

    @property
    def default_project(self) -> str | None:
        return self.claim_project or self.project

    def has_permission(self, scope: str) -> bool:
        return scope in self.scopes

    def check_permission(
        self,
        project_id: str | None = None,
        user_id: str | None = None,
        source_id: str | None = None,
    ) -> None:
        """Check that this token may create measurements for the given subject.

        Raises:
            HttpForbiddenError: Missing ``MEASUREMENT.CREATE`` scope, or the
                                user or project does not match the token.
        """
        if not self.has_permission(MEASUREMENT_CREATE):
            raise HttpForbiddenError(
                "insufficient_scope", "No permission to create measurement"
            )
        if user_id is not None and self.user_id is not None and user_id != self.user_id:
            raise HttpForbiddenError(
                "user_mismatch",
                f"Actual user ID {user_id} does not match expected user ID {self.user_id}",
            )
        if project_id is not None and self.claim_project is not None and project_id != self.claim_project:
            raise HttpForbiddenError(
                "project_mismatch",
                f"Actual project ID {project_id} does not match expected "
                f"project ID {self.claim_project}",
            )
