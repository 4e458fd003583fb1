# storefront/services/user_service.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import UserCreate, UserRead
from storefront.repos.user_repo import UserRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        """Registers a user; re-posting a known id is idempotent and returns the stored record."""
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead.model_validate(existing)

        email = payload.email.strip().lower()
        if self.repo.get_by_email(email):
            raise ValueError("Email already registered")

        try:
            user = self.repo.add_user(UserModel(id=payload.id, name=payload.name, email=email))
            self.db.commit()
        except IntegrityError:
            # lost a race against a concurrent signup with the same email
            self.db.rollback()
            raise ValueError("Email already registered")
        except Exception:
            self.db.rollback()
            raise

        logger.info("user_created", user_id=user.id)
        return UserRead.model_validate(user)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)
