# app/services/escalation_service.py

from datetime import datetime, timedelta
from typing import Optional, Tuple

import jwt
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AdminSessionStale,
    AdminTokenRequired,
    EscalationIneligible,
    InsufficientAdminRole,
    InvalidEscalationPassword,
)
from app.core.role_catalog import RoleCatalog
from app.core.security import create_admin_token, decode_admin_token, new_token_id, verify_password
from app.core.session_store import MemorySessionStore
from app.models.enums import PrincipalKind
from app.models.user import User, utcnow
from app.schemas.auth import AdminSession, AuthContext
from app.services.access_rights_service import AccessRightAggregator
from app.services.membership_service import get_principal_record, load_principals
from app.services.session_service import can_escalate


class EscalationManager:
    """
    Issues, validates and revokes admin tokens layered over a base session.

    The admin session lives only in the session registry (keyed by the base
    session id) and in the admin token itself. Validation checks the token
    signature, the base session, and the registry entry, so logging out or
    de-escalating invalidates a token before its expiry.
    """

    def __init__(self, session: AsyncSession, catalog: RoleCatalog, store: MemorySessionStore):
        self.session = session
        self.store = store
        self.aggregator = AccessRightAggregator(catalog)

    # ------------------------------------------------------------------
    # Escalate
    # ------------------------------------------------------------------
    async def escalate(self, context: AuthContext, escalation_password: str) -> AdminSession:
        user: User = context.user
        principals = await load_principals(self.session, user.id)

        # Eligibility is decided before the password is looked at
        if not can_escalate(principals):
            logger.warning(f"Escalation refused for user {user.id}: not eligible")
            raise EscalationIneligible()

        record = await get_principal_record(self.session, user.id, PrincipalKind.GlobalAdmin)
        if not verify_password(escalation_password, record.escalation_password_hash):
            logger.warning(f"Escalation refused for user {user.id}: wrong escalation password")
            raise InvalidEscalationPassword()

        admin = next(p for p in principals if p.kind == PrincipalKind.GlobalAdmin)
        roles = admin.all_roles()
        rights = self.aggregator.expand_roles(roles)

        lifetime = timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES)
        expires_at = utcnow() + lifetime
        token_id = new_token_id()

        token = create_admin_token(
            subject=str(user.id),
            session_id=context.session_id,
            token_id=token_id,
            roles=roles,
            access_rights=rights,
            expires_delta=lifetime,
        )
        await self.store.set_admin_session(
            context.session_id,
            {
                "user_id": str(user.id),
                "jti": token_id,
                "roles": roles,
                "expires_at": expires_at.isoformat(),
            },
            int(lifetime.total_seconds()),
        )

        logger.info(f"Escalated: user={user.id} session={context.session_id} roles={roles}")
        return AdminSession(
            admin_token=token,
            expires_in=int(lifetime.total_seconds()),
            expires_at=expires_at,
            admin_roles=roles,
            admin_access_rights=rights,
        )

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------
    async def validate_admin_token(self, context: AuthContext, admin_token: Optional[str]) -> dict:
        if not admin_token:
            raise AdminTokenRequired()

        try:
            claims = decode_admin_token(admin_token)
        except jwt.ExpiredSignatureError:
            logger.warning(f"Expired admin token presented by user {context.user.id}")
            raise AdminSessionStale()
        except jwt.InvalidTokenError:
            raise AdminTokenRequired()

        # Bound to the base session it was issued for
        if claims.get("sid") != context.session_id or claims.get("sub") != str(context.user.id):
            raise AdminTokenRequired()

        if not await self.store.session_exists(context.session_id):
            logger.warning(f"Admin token for ended session {context.session_id}")
            raise AdminSessionStale()

        record = await self.store.get_admin_session(context.session_id)
        if record is None or record.get("jti") != claims.get("jti"):
            logger.warning(f"Stale admin token presented by user {context.user.id}")
            raise AdminSessionStale()

        return claims

    @staticmethod
    def require_roles(claims: dict, *roles: str) -> None:
        held = set(claims.get("roles") or [])
        if roles and not held.intersection(roles):
            raise InsufficientAdminRole()

    # ------------------------------------------------------------------
    # De-escalate / status
    # ------------------------------------------------------------------
    async def deescalate(self, context: AuthContext) -> bool:
        existed = await self.store.revoke_admin_session(context.session_id)
        if existed:
            logger.info(f"De-escalated: user={context.user.id} session={context.session_id}")
        return existed

    async def admin_session_status(self, session_id: str) -> Tuple[bool, Optional[datetime]]:
        record = await self.store.get_admin_session(session_id)
        if record is None:
            return False, None
        return True, datetime.fromisoformat(record["expires_at"])
