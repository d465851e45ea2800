import logging

from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.db.session import engine, session_scope
from kernelpanel.models import Base, Kernel, KernelCategory, KernelConfigRevision, PanelSettings
from kernelpanel.services.auth import PANEL_SETTINGS_ID, hash_password
from kernelpanel.services.catalog import DEFAULT_FAKE_SITE, KERNELS
from kernelpanel.services.kernel_config import default_config, to_storage

logger = logging.getLogger(__name__)
settings = get_settings()


def seed_kernels(db: Session) -> int:
    created = 0
    for definition in KERNELS:
        if db.get(Kernel, definition["id"]) is not None:
            continue
        config = to_storage(default_config(definition["kernel_type"]))
        kernel = Kernel(
            id=definition["id"],
            name=definition["name"],
            description=definition["description"],
            category=KernelCategory(definition["category"]),
            kernel_type=definition["kernel_type"],
            protocols=definition["protocols"],
            source_url=definition["source_url"],
            config=config,
            config_version=1,
        )
        db.add(kernel)
        db.add(KernelConfigRevision(kernel_id=kernel.id, revision=1, config=config, actor="system"))
        created += 1
    return created


def seed_panel_settings(db: Session) -> bool:
    if db.get(PanelSettings, PANEL_SETTINGS_ID) is not None:
        return False
    db.add(
        PanelSettings(
            id=PANEL_SETTINGS_ID,
            username=settings.admin_username,
            password_hash=hash_password(settings.admin_password),
            fake_site=dict(DEFAULT_FAKE_SITE),
            blocked_countries=[],
        )
    )
    return True


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        created = seed_kernels(db)
        if seed_panel_settings(db):
            logger.info("Bootstrapped panel admin %s", settings.admin_username)
    if created:
        logger.info("Seeded %d kernels", created)
