"""
Legal content endpoints: privacy policy, terms of service, privacy sections.

Public reads are unauthenticated; writes live under /api/admin and require
an admin session.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import PrivacyPolicy, TermsOfService, User
from deps import require_admin
from domain.responses import success_response
from models import PolicyOut, PrivacySectionOut, dump, dump_all
from services import content_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["content"])


class DocumentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class SectionCreateRequest(BaseModel):
    section_key: str = Field(..., alias="sectionKey", min_length=1, max_length=50, pattern=r"^[a-z0-9_\-]+$")
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    icon: Optional[str] = Field(default=None, max_length=50)
    sort_order: int = Field(0, alias="sortOrder")
    is_active: bool = Field(True, alias="isActive")


class SectionUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=50)
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    is_active: Optional[bool] = Field(default=None, alias="isActive")


# ── Public ──────────────────────────────────────────────────────────

@router.get("/privacy-policy")
async def privacy_policy(db: AsyncSession = Depends(get_db)):
    return success_response(data=dump(PolicyOut, await content_service.get_active_document(db, PrivacyPolicy)))


@router.get("/terms")
async def terms(db: AsyncSession = Depends(get_db)):
    return success_response(data=dump(PolicyOut, await content_service.get_active_document(db, TermsOfService)))


@router.get("/privacy-sections")
async def privacy_sections(db: AsyncSession = Depends(get_db)):
    return success_response(data=dump_all(PrivacySectionOut, await content_service.list_sections(db)))


# ── Admin ───────────────────────────────────────────────────────────

@router.put("/admin/privacy-policy")
async def publish_privacy_policy(
    request: DocumentRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    doc = await content_service.publish_document(
        db, PrivacyPolicy, title=request.title, content=request.content, editor=admin
    )
    await db.commit()
    logger.info(f"Privacy policy v{doc.version} published by admin {admin.id}")
    return success_response(data=dump(PolicyOut, doc))


@router.put("/admin/terms")
async def publish_terms(
    request: DocumentRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    doc = await content_service.publish_document(
        db, TermsOfService, title=request.title, content=request.content, editor=admin
    )
    await db.commit()
    logger.info(f"Terms v{doc.version} published by admin {admin.id}")
    return success_response(data=dump(PolicyOut, doc))


@router.get("/admin/privacy-sections")
async def all_sections(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    sections = await content_service.list_sections(db, include_inactive=True)
    return success_response(data=dump_all(PrivacySectionOut, sections))


@router.post("/admin/privacy-sections")
async def create_section(
    request: SectionCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    section = await content_service.create_section(
        db,
        section_key=request.section_key,
        title=request.title,
        content=request.content,
        icon=request.icon,
        sort_order=request.sort_order,
        is_active=request.is_active,
    )
    await db.commit()
    return success_response(data=dump(PrivacySectionOut, section))


@router.put("/admin/privacy-sections/{section_key}")
async def update_section(
    section_key: str,
    request: SectionUpdateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    section = await content_service.update_section(db, section_key, **request.model_dump())
    await db.commit()
    return success_response(data=dump(PrivacySectionOut, section))


@router.delete("/admin/privacy-sections/{section_key}")
async def delete_section(
    section_key: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await content_service.delete_section(db, section_key)
    await db.commit()
    return success_response(data={"deleted": section_key})
