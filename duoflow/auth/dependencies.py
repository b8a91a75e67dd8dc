"""
Dependencies binding the second-factor step to the host login flow.
"""
import inspect

from fastapi import HTTPException, Request, status

from ..mfa.context import LoginContext
from ..mfa.service import FlowController


def get_flow_controller(request: Request) -> FlowController:
    controller = getattr(request.app.state, "flow_controller", None)
    if controller is None:
        controller = FlowController()
        request.app.state.flow_controller = controller
    return controller


async def get_login_context(request: Request) -> LoginContext:
    """Build the login context with the factory installed by the host."""
    factory = getattr(request.app.state, "login_context_factory", None)
    if factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No login flow host configured",
        )
    context = factory(request)
    if inspect.isawaitable(context):
        context = await context
    return context
