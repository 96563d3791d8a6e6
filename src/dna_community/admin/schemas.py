"""Admin request bodies."""

from __future__ import annotations

from dna_community.schemas import CamelModel


class SetAdminRequest(CamelModel):
    is_admin: bool
