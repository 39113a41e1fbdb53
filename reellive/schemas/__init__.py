"""
reellive.schemas
~~~~~~~~~~~~~~~~
实时事件信封与 REST 接口的 Pydantic 模型。
"""
from reellive.schemas.api_response import ApiResponse
from reellive.schemas.events import Envelope, IgnoredEvent, Topic, parse_envelope

ApiResponse.model_rebuild()

__all__ = ["ApiResponse", "Envelope", "IgnoredEvent", "Topic", "parse_envelope"]
