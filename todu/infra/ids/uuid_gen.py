from __future__ import annotations

import uuid

from todu.domain.common.ports import IdGenerator


class UuidGenerator(IdGenerator):
    def new_id(self) -> str:
        return uuid.uuid4().hex
