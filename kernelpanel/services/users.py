import re
import secrets
import string
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.models import Kernel, User, UserStatus
from kernelpanel.services.validation import (
    ConfigError,
    ConfigValidationError,
    invalid_enum,
    invalid_value,
)

SUBLINK_ALPHABET = string.ascii_lowercase + string.digits
SUBLINK_SUFFIX_LENGTH = 6
SUBLINK_ATTEMPTS = 10


def _sublink_candidate(username: str) -> str:
    slug = re.sub(r"[^a-z0-9]", "", username.lower()) or "user"
    suffix = "".join(secrets.choice(SUBLINK_ALPHABET) for _ in range(SUBLINK_SUFFIX_LENGTH))
    return f"sub_{slug}_{suffix}"


def generate_sublink(db: Session, username: str) -> str:
    users = Repository(db, User)
    for _ in range(SUBLINK_ATTEMPTS):
        candidate = _sublink_candidate(username)
        if users.find_one(User.sublink_path == candidate) is None:
            return candidate
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="sublink_generation_failed")


def check_user_fields(db: Session, data: dict) -> None:
    """Cross-field and cross-entity rules that pydantic cannot see.

    `data` holds the effective values after an update is applied.
    """
    errors: list[ConfigError] = []

    kernel = db.get(Kernel, data["kernel_id"])
    if kernel is None:
        errors.append(invalid_value("kernelId", "kernel does not exist", data["kernel_id"]))
    elif data["protocol"] not in kernel.protocol_names:
        errors.append(invalid_enum("protocol", data["protocol"], kernel.protocol_names))

    if data["data_used_gb"] > data["data_allowance_gb"]:
        errors.append(invalid_value("dataUsedGB", "data used cannot exceed the data allowance", data["data_used_gb"]))

    if errors:
        raise ConfigValidationError(errors)


def create_user(db: Session, data: dict) -> User:
    check_user_fields(db, data)
    if not data.get("sublink_path"):
        data["sublink_path"] = generate_sublink(db, data["username"])
    data["status"] = UserStatus(data["status"])
    return Repository(db, User).put(User(**data))


def update_user(db: Session, user: User, changes: dict) -> User:
    effective = {
        "kernel_id": user.kernel_id,
        "protocol": user.protocol,
        "data_used_gb": user.data_used_gb,
        "data_allowance_gb": user.data_allowance_gb,
    }
    effective.update({key: value for key, value in changes.items() if key in effective})
    check_user_fields(db, effective)

    for key, value in changes.items():
        if key == "status":
            value = UserStatus(value)
        setattr(user, key, value)
    return Repository(db, User).put(user)


def rotate_sublink(db: Session, user: User) -> str:
    previous = user.sublink_path
    user.sublink_path = generate_sublink(db, user.username)
    Repository(db, User).put(user)
    return previous


def find_by_sublink(db: Session, sublink: str) -> Optional[User]:
    return Repository(db, User).find_one(User.sublink_path == sublink)
