"""Conversions between the server's wire format and the client's issue shape.

The server stores statuses as ``Open``/``In Progress``/``Resolved`` and mixes
snake_case and camelCase keys in its payloads. The client works with
``open``/``in-progress``/``resolved`` and one canonical field set.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

STATUS_TO_SERVER = {
    'open': 'Open',
    'in-progress': 'In Progress',
    'resolved': 'Resolved',
}
STATUS_FROM_SERVER = {server: client for client, server in STATUS_TO_SERVER.items()}

DEFAULT_CLIENT_STATUS = 'open'
DEFAULT_SERVER_STATUS = STATUS_TO_SERVER[DEFAULT_CLIENT_STATUS]


def _status_key(status: str) -> str:
    return status.strip().lower().replace(' ', '-')


def status_to_server(status: str | None) -> str:
    if not status:
        return DEFAULT_SERVER_STATUS
    return STATUS_TO_SERVER.get(_status_key(status), DEFAULT_SERVER_STATUS)


def status_from_server(status: str | None) -> str:
    if not status:
        return DEFAULT_CLIENT_STATUS
    if status in STATUS_FROM_SERVER:
        return STATUS_FROM_SERVER[status]
    key = _status_key(status)
    return key if key in STATUS_TO_SERVER else DEFAULT_CLIENT_STATUS


@dataclass
class Creator:
    id: str
    name: str
    email: str
    role: str = ''


@dataclass
class Issue:
    id: str
    title: str
    description: str
    category: str
    status: str
    created_at: str
    updated_at: str
    created_by: Creator | None = None
    image_url: str | None = None
    admin_remarks: str = ''


def _first(raw: dict, *keys, default=None):
    for key in keys:
        value = raw.get(key)
        if value not in (None, ''):
            return value
    return default


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_creator(raw) -> Creator | None:
    # A bare id carries no display data.
    if not isinstance(raw, dict) or not raw.get('name'):
        return None
    return Creator(
        id=str(_first(raw, 'id', '_id', default='')),
        name=raw.get('name') or '',
        email=raw.get('email') or '',
        role=raw.get('role') or '',
    )


def normalize_issue(raw: dict) -> Issue:
    return Issue(
        id=str(_first(raw, 'id', '_id', default='')),
        title=raw.get('title') or '',
        description=raw.get('description') or '',
        category=raw.get('category') or '',
        status=status_from_server(raw.get('status')),
        created_at=_first(raw, 'created_at', 'createdAt') or _now_iso(),
        updated_at=_first(raw, 'updated_at', 'updatedAt') or _now_iso(),
        created_by=normalize_creator(_first(raw, 'createdBy', 'created_by')),
        image_url=_first(raw, 'imageUrl', 'image_url'),
        admin_remarks=_first(raw, 'adminRemarks', 'admin_remarks', default=''),
    )


def issue_to_server(issue: Issue) -> dict:
    payload = {
        'id': issue.id,
        'title': issue.title,
        'description': issue.description,
        'category': issue.category,
        'status': status_to_server(issue.status),
        'imageUrl': issue.image_url,
        'adminRemarks': issue.admin_remarks,
        'created_at': issue.created_at,
        'updated_at': issue.updated_at,
    }
    if issue.created_by is not None:
        payload['createdBy'] = {
            'id': issue.created_by.id,
            'name': issue.created_by.name,
            'email': issue.created_by.email,
            'role': issue.created_by.role,
        }
    return payload
