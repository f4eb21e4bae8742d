"""Shared Pydantic schema helpers."""
from __future__ import annotations

from typing import Annotated

from pydantic import Field

# Primary keys are 32-bit ``Integer`` columns.
MAX_ID = 2_147_483_647

EntityId = Annotated[int, Field(ge=1, le=MAX_ID)]
