from __future__ import annotations
from pydantic import BaseModel
from typing import Optional

from ..domain.models import ActionType, ArtifactType, DemoMode


class ConfigUpdateRequest(BaseModel):
    artifact_type: Optional[ArtifactType] = None
    demo_mode: Optional[DemoMode] = None


class ManualActionRequest(BaseModel):
    action_type: ActionType
