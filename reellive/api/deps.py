from fastapi import Request

from reellive.services.event_hub import EventHub
from reellive.services.interaction_service import InteractionService


def get_event_hub(request: Request) -> EventHub:
    return request.app.state.event_hub


def get_interaction_service(request: Request) -> InteractionService:
    return request.app.state.interaction_service
