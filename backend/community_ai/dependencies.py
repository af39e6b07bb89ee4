from typing import Callable

from fastapi import Depends, HTTPException, Request

from community_ai.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def require_feature(name: str) -> Callable[..., ServiceContainer]:
    def dependency(services: ServiceContainer = Depends(get_services)) -> ServiceContainer:
        if not services.settings.feature_enabled(name):
            raise HTTPException(status_code=503, detail=f"AI feature '{name}' is disabled.")
        return services

    return dependency
