"""
Legal content: privacy policy, privacy sections and terms of service.

Policy and terms are versioned: publishing a new text deactivates the
previous one, so exactly one document of each kind is active.
"""
from typing import Type

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import PrivacyPolicy, PrivacySection, TermsOfService, User, utcnow
from domain.errors import ConflictError, NotFoundError, ValidationError

Document = Type[PrivacyPolicy] | Type[TermsOfService]


async def get_active_document(db: AsyncSession, model: Document):
    res = await db.execute(
        select(model).where(model.is_active == True).order_by(model.version.desc()).limit(1)  # noqa: E712
    )
    doc = res.scalar_one_or_none()
    if doc is None:
        raise NotFoundError(model.__name__, "active")
    return doc


async def publish_document(db: AsyncSession, model: Document, *, title: str, content: str, editor: User):
    if not title.strip() or not content.strip():
        raise ValidationError("Title and content are required")

    latest = (await db.execute(select(func.max(model.version)))).scalar_one()
    await db.execute(update(model).where(model.is_active == True).values(is_active=False))  # noqa: E712

    doc = model(
        title=title.strip(),
        content=content,
        version=(latest or 0) + 1,
        is_active=True,
        updated_by=editor.id,
    )
    db.add(doc)
    await db.flush()
    return doc


async def list_sections(db: AsyncSession, *, include_inactive: bool = False) -> list[PrivacySection]:
    query = select(PrivacySection).order_by(PrivacySection.sort_order, PrivacySection.id)
    if not include_inactive:
        query = query.where(PrivacySection.is_active == True)  # noqa: E712
    res = await db.execute(query)
    return res.scalars().all()


async def _get_section(db: AsyncSession, key: str) -> PrivacySection | None:
    res = await db.execute(select(PrivacySection).where(PrivacySection.section_key == key))
    return res.scalar_one_or_none()


async def create_section(
    db: AsyncSession,
    *,
    section_key: str,
    title: str,
    content: str,
    icon: str | None = None,
    sort_order: int = 0,
    is_active: bool = True,
) -> PrivacySection:
    if await _get_section(db, section_key) is not None:
        raise ConflictError(f"Privacy section '{section_key}' already exists")
    section = PrivacySection(
        section_key=section_key,
        title=title,
        content=content,
        icon=icon,
        sort_order=sort_order,
        is_active=is_active,
    )
    db.add(section)
    await db.flush()
    return section


async def update_section(db: AsyncSession, key: str, **fields) -> PrivacySection:
    section = await _get_section(db, key)
    if section is None:
        raise NotFoundError("Privacy section", key)
    for name, value in fields.items():
        if value is not None:
            setattr(section, name, value)
    section.updated_at = utcnow()
    await db.flush()
    return section


async def delete_section(db: AsyncSession, key: str) -> None:
    section = await _get_section(db, key)
    if section is None:
        raise NotFoundError("Privacy section", key)
    await db.delete(section)
    await db.flush()
