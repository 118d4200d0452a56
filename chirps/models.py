"""
chirps/models.py -- Domain dataclass for posts.

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Chirp:
    """A short text post owned by one user."""

    body: str
    user_id: uuid.UUID
    id: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
