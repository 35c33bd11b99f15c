from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    id: UUID
    user_id: UUID
    course_id: UUID
    verification_code: str
    generated_at: datetime

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID) -> Certificate:
        now = datetime.now(UTC)
        # CERT-<date>-<course>-<user>-<random>, e.g. CERT-20260119-1A2B3C4D-...
        code = "-".join(
            (
                "CERT",
                now.strftime("%Y%m%d"),
                course_id.hex[:8].upper(),
                user_id.hex[:8].upper(),
                secrets.token_hex(4).upper(),
            )
        )
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            verification_code=code,
            generated_at=now,
        )
