from __future__ import annotations

import uuid

from taskdesk.domain.common.ports import IdGenerator


class UuidGenerator(IdGenerator):
    """Random 32-char hex ids for users and tasks; callers treat them as opaque."""

    def new_id(self) -> str:
        return uuid.uuid4().hex
