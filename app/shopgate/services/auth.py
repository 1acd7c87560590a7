from app.shopgate.core.enums import AuditAction, PrincipalStatus
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.security import create_user_access_token, verify_password
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.repos.users import UserRepository
from app.shopgate.services.audit import AuditTrail, build_changes


class AuthService:
    def __init__(self, db):
        self.db = db
        self.repo = UserRepository(db)
        self.audit = AuditTrail(db)

    def login(self, email: str, password: str):
        user = self.repo.get_by_email(email)
        if user is None:
            raise AppError(ErrorCatalog.INVALID_CREDENTIALS)

        if not verify_password(password, user.hashed_password):
            self._record(user, AuditAction.LOGIN_FAILED, {"reason": "invalid_password"})
            raise AppError(ErrorCatalog.INVALID_CREDENTIALS)

        if user.status != PrincipalStatus.ACTIVE.value:
            self._record(user, AuditAction.LOGIN_FAILED, {"reason": "inactive", "status": user.status})
            raise AppError(ErrorCatalog.USER_INACTIVE)

        self._record(user, AuditAction.LOGIN, None)
        return user, create_user_access_token(user)

    def _record(self, user, action: AuditAction, context: dict | None) -> None:
        # Failed attempts are committed on their own so the rejection cannot roll them back.
        with UnitOfWork(self.db):
            self.audit.record(
                actor_id=user.id,
                action=action,
                table_name="User",
                record_id=str(user.id),
                changes=build_changes(None, None, changed_by=str(user.id), context=context),
            )
