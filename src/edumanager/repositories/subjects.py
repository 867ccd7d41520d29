# src/edumanager/repositories/subjects.py
from __future__ import annotations

from edumanager.schemas.payloads import SubjectCreate
from edumanager.schemas.records import Subject
from edumanager.store.base import Order

from .base import AccessScopedRepository
from .policy import Entity


class SubjectRepository(AccessScopedRepository[Subject]):
    entity = Entity.SUBJECTS
    table = "subjects"
    record_model = Subject
    create_model = SubjectCreate
    default_order = (Order("name"),)
