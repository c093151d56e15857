"""Shared builders for test data: users, payloads and a ledger double."""

import io
import uuid
from typing import Optional

from PIL import Image
from pypdf import PdfWriter

from app.modules.ledger import LedgerResult, LedgerStatus
from app.modules.users.models import User, UserProfile


class FakeLedger:
    """In-memory ledger; set `mode` to simulate a degraded service."""

    enabled = True

    def __init__(self):
        self.hashes: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.mode = LedgerStatus.OK

    def _degraded(self) -> Optional[LedgerResult]:
        if self.mode == LedgerStatus.OK:
            return None
        return LedgerResult(self.mode, detail=f"simulated {self.mode.value}")

    async def register_hash(self, material_id, content_hash):
        self.calls.append(("register", material_id, content_hash))
        degraded = self._degraded()
        if degraded:
            return degraded
        self.hashes[material_id] = content_hash
        return LedgerResult(LedgerStatus.OK, value=f"tx-{len(self.calls)}")

    async def get_hash(self, material_id):
        self.calls.append(("get", material_id))
        degraded = self._degraded()
        if degraded:
            return degraded
        if material_id not in self.hashes:
            return LedgerResult(LedgerStatus.ERROR, detail="HTTP 404")
        return LedgerResult(LedgerStatus.OK, value=self.hashes[material_id])

    async def deregister(self, material_id):
        self.calls.append(("deregister", material_id))
        degraded = self._degraded()
        if degraded:
            return degraded
        self.hashes.pop(material_id, None)
        return LedgerResult(LedgerStatus.OK, value=f"tx-{len(self.calls)}")

    async def aclose(self):
        return None


def png_bytes(size=(400, 200), color="red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def pdf_bytes(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_user(
    session,
    *,
    first_name: str = "Ada",
    last_name: str = "Lovelace",
    role: Optional[str] = "Student",
    institution: Optional[str] = "Analytical University",
    with_profile: bool = True,
) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=f"{uuid.uuid4().hex[:10]}@example.edu",
        first_name=first_name,
        last_name=last_name,
    )
    session.add(user)
    if with_profile:
        session.add(UserProfile(user_id=user.id, role=role, primary_institution=institution))
    session.commit()
    session.refresh(user)
    return user
