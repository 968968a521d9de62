import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fruitflow.api.deps import create_access_token, hash_password, verify_password
from fruitflow.core.ratings import aggregate, should_suspend
from fruitflow.models.order import Order
from fruitflow.models.user import User, UserRole
from fruitflow.schemas.user import SignupRequest

logger = logging.getLogger(__name__)

NEW_MANAGER_ADDRESS = "1 Admin Way, Suite M, Management City"


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_name(db: Session, name: str) -> User | None:
    return db.query(User).filter(User.name == name.strip()).first()


def _ensure_name_free(db: Session, name: str) -> None:
    if get_user_by_name(db, name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken. Please choose another.",
        )


def signup(db: Session, dto: SignupRequest) -> tuple[User, str | None]:
    if dto.role == UserRole.MANAGER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager accounts are pre-configured or created by existing managers.",
        )
    name = dto.name.strip()
    _ensure_name_free(db, name)

    user = User(
        name=name,
        password_hash=hash_password(dto.password),
        role=dto.role,
        is_approved=dto.role == UserRole.CUSTOMER,
        is_suspended=False,
        address="",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User signed up name=%s role=%s approved=%s", user.name, user.role.value, user.is_approved)

    if user.is_partner:
        return user, None
    return user, create_access_token(user.id, user.name, user.role)


def login(db: Session, name: str, password: str) -> tuple[User, str]:
    user = get_user_by_name(db, name)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    if user.is_suspended:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended due to low ratings. Please contact support.",
        )
    if user.is_partner and not user.is_approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Your account as a {user.role.value} is awaiting manager approval.",
        )
    return user, create_access_token(user.id, user.name, user.role)


def approve_user(db: Session, user_id: UUID) -> User | None:
    user = get_user_by_id(db, user_id)
    if not user:
        return None
    user.is_approved = True
    db.commit()
    db.refresh(user)
    logger.info("User approved name=%s role=%s", user.name, user.role.value)
    return user


def create_manager(db: Session, name: str, password: str) -> User:
    name = name.strip()
    _ensure_name_free(db, name)
    manager = User(
        name=name,
        password_hash=hash_password(password),
        role=UserRole.MANAGER,
        is_approved=True,
        is_suspended=False,
        address=NEW_MANAGER_ADDRESS,
    )
    db.add(manager)
    db.commit()
    db.refresh(manager)
    return manager


def update_address(db: Session, user: User, address: str) -> User:
    user.address = address.strip()
    db.commit()
    db.refresh(user)
    return user


def get_all_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.asc()).all()


def get_partner_approvals(db: Session) -> tuple[list[User], list[User]]:
    partners = (
        db.query(User)
        .filter(User.role.in_([UserRole.SUPPLIER, UserRole.TRANSPORTER]))
        .order_by(User.created_at.asc())
        .all()
    )
    pending = [u for u in partners if not u.is_approved]
    approved = [u for u in partners if u.is_approved]
    return pending, approved


def get_available_transporters(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(
            User.role == UserRole.TRANSPORTER,
            User.is_approved.is_(True),
            User.is_suspended.is_(False),
        )
        .order_by(User.name.asc())
        .all()
    )


def refresh_ratings(db: Session, user: User) -> bool:
    """Recompute a user's rating aggregates and apply the suspension rule.

    Returns True when this refresh suspended the account.
    """
    supplier_rows = (
        db.query(Order.supplier_rating)
        .filter(
            Order.assessment_submitted.is_(True),
            Order.supplier_id == user.id,
            Order.supplier_rating.isnot(None),
        )
        .all()
    )
    transporter_rows = (
        db.query(Order.transporter_rating)
        .filter(
            Order.assessment_submitted.is_(True),
            Order.transporter_id == user.id,
            Order.transporter_rating.isnot(None),
        )
        .all()
    )
    supplier_stats = aggregate(r[0] for r in supplier_rows)
    transporter_stats = aggregate(r[0] for r in transporter_rows)

    user.average_supplier_rating = supplier_stats.average
    user.supplier_rating_count = supplier_stats.count
    user.average_transporter_rating = transporter_stats.average
    user.transporter_rating_count = transporter_stats.count

    suspended_now = False
    if not user.is_suspended and should_suspend(
        user.role, supplier_stats, transporter_stats
    ):
        user.is_suspended = True
        suspended_now = True
        logger.warning(
            "User %s (%s) automatically suspended due to low ratings.",
            user.name,
            user.id,
        )
    db.commit()
    db.refresh(user)
    return suspended_now


def refresh_all_ratings(db: Session) -> list[User]:
    suspended = []
    for user in get_all_users(db):
        if refresh_ratings(db, user):
            suspended.append(user)
    return suspended
