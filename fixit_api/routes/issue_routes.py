import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fixit_api.auth.dependencies import (
    CREATE_ISSUE,
    READ_ALL_ISSUES,
    READ_OWN_ISSUES,
    UPDATE_ISSUE_REMARKS,
    UPDATE_ISSUE_STATUS,
    Principal,
    get_current_principal,
    require_capabilities,
)
from fixit_api.core import config
from fixit_api.core.errors import ForbiddenError, NotFoundError, ValidationError
from fixit_api.database import get_db
from fixit_api.models.issue import CATEGORIES, STATUS_OPEN, STATUSES, Issue
from fixit_api.storage import ObjectStore, get_object_store

router = APIRouter(tags=['issues'])

logger = logging.getLogger(__name__)


class CreatorResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class IssueResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    status: str
    image_url: str | None = Field(default=None, alias='imageUrl')
    created_by: CreatorResponse | None = Field(default=None, alias='createdBy')
    admin_remarks: str = Field(default='', alias='adminRemarks')
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        populate_by_name = True


class StatusUpdateRequest(BaseModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip()
        if normalized not in STATUSES:
            raise ValueError('Invalid status')
        return normalized


class RemarksUpdateRequest(BaseModel):
    admin_remarks: str | None = Field(default='', alias='adminRemarks')

    class Config:
        populate_by_name = True

    @field_validator('admin_remarks')
    @classmethod
    def validate_admin_remarks(cls, value: str | None) -> str:
        return (value or '').strip()


def validate_issue_fields(title: str, description: str, category: str) -> tuple[str, str, str]:
    title = (title or '').strip()
    description = (description or '').strip()
    category = (category or '').strip()

    field_errors = []
    if not title:
        field_errors.append({'field': 'title', 'msg': 'Title is required'})
    if not description:
        field_errors.append({'field': 'description', 'msg': 'Description is required'})
    if category not in CATEGORIES:
        field_errors.append({'field': 'category', 'msg': 'Invalid category'})

    if field_errors:
        raise ValidationError('Validation failed', errors=field_errors)

    return title, description, category


def get_issue_or_404(db: Session, issue_id: str) -> Issue:
    issue = db.query(Issue).filter(Issue.id == issue_id).first()
    if issue is None:
        raise NotFoundError('Issue not found')
    return issue


def build_issue_response(issue: Issue, image_url: str | None) -> IssueResponse:
    return IssueResponse(
        id=issue.id,
        title=issue.title,
        description=issue.description,
        category=issue.category,
        status=issue.status,
        image_url=image_url,
        created_by=CreatorResponse.model_validate(issue.creator) if issue.creator else None,
        admin_remarks=issue.admin_remarks or '',
        created_at=issue.created_at,
        updated_at=issue.updated_at,
    )


def serialize_issue(issue: Issue, store: ObjectStore) -> IssueResponse:
    image_url = store.sign_url_or_none(issue.image_url) if issue.image_url else None
    return build_issue_response(issue, image_url)


def serialize_issues(issues: list[Issue], store: ObjectStore) -> list[IssueResponse]:
    signed_urls = store.sign_many([issue.image_url for issue in issues], fail_soft=True)
    return [build_issue_response(issue, image_url) for issue, image_url in zip(issues, signed_urls)]


def query_issues(
    db: Session,
    created_by: str | None = None,
    status: str | None = None,
    category: str | None = None,
) -> list[Issue]:
    query = db.query(Issue)
    if created_by:
        query = query.filter(Issue.created_by == created_by)
    if status:
        query = query.filter(Issue.status == status)
    if category:
        query = query.filter(Issue.category == category)
    return query.order_by(Issue.created_at.desc()).all()


@router.post('', response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
def create_issue(
    title: str = Form(''),
    description: str = Form(''),
    category: str = Form(''),
    image: UploadFile | None = File(None),
    principal: Principal = Depends(require_capabilities(CREATE_ISSUE)),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    title, description, category = validate_issue_fields(title, description, category)

    storage_path = None
    if image is not None and image.filename:
        data = image.file.read(config.MAX_UPLOAD_BYTES + 1)
        storage_path = store.store_image(data, image.content_type, image.filename)

    issue = Issue(
        title=title,
        description=description,
        category=category,
        status=STATUS_OPEN,
        image_url=storage_path,
        created_by=principal.id,
        admin_remarks='',
    )
    db.add(issue)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if storage_path:
            store.remove_image(storage_path)
        raise

    created = get_issue_or_404(db, issue.id)
    logger.info('Issue %s created by %s', created.id, principal.id)
    return serialize_issue(created, store)


@router.get('', response_model=list[IssueResponse])
def list_all_issues(
    status: str | None = None,
    category: str | None = None,
    principal: Principal = Depends(require_capabilities(READ_ALL_ISSUES)),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    issues = query_issues(db, status=status, category=category)
    return serialize_issues(issues, store)


@router.get('/my', response_model=list[IssueResponse])
def list_my_issues(
    status: str | None = None,
    category: str | None = None,
    principal: Principal = Depends(require_capabilities(READ_OWN_ISSUES)),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    issues = query_issues(db, created_by=principal.id, status=status, category=category)
    return serialize_issues(issues, store)


@router.get('/{issue_id}', response_model=IssueResponse)
def get_issue(
    issue_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    issue = get_issue_or_404(db, issue_id)

    if not principal.can(READ_ALL_ISSUES) and issue.created_by != principal.id:
        raise ForbiddenError('Access denied')

    return serialize_issue(issue, store)


@router.put('/{issue_id}/status', response_model=IssueResponse)
def update_issue_status(
    issue_id: str,
    data: StatusUpdateRequest,
    principal: Principal = Depends(require_capabilities(UPDATE_ISSUE_STATUS)),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    issue = get_issue_or_404(db, issue_id)

    # Any status may follow any other.
    if issue.status != data.status:
        logger.info('Issue %s status %s -> %s by %s', issue.id, issue.status, data.status, principal.id)
        issue.status = data.status
        db.commit()
        db.refresh(issue)

    return serialize_issue(issue, store)


@router.put('/{issue_id}/remarks', response_model=IssueResponse)
def update_issue_remarks(
    issue_id: str,
    data: RemarksUpdateRequest,
    principal: Principal = Depends(require_capabilities(UPDATE_ISSUE_REMARKS)),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    issue = get_issue_or_404(db, issue_id)

    if (issue.admin_remarks or '') != data.admin_remarks:
        issue.admin_remarks = data.admin_remarks
        db.commit()
        db.refresh(issue)

    return serialize_issue(issue, store)
