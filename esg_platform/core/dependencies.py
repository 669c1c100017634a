from fastapi import Request
from esg_platform.core.config import Config


def get_config(request: Request) -> Config:
    """
    Returns the configuration record the application was created with.
    """
    return request.app.state.config
