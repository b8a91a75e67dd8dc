"""
Prometheus metrics for the second-factor step.
"""
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

# Define metrics
mfa_challenges_counter = Counter('mfa_challenges_total', 'Total MFA challenges', ['provider', 'status'])
mfa_verifications_counter = Counter('mfa_verifications_total', 'Second-factor flow outcomes', ['outcome'])

metrics_router = APIRouter()


@metrics_router.get("")
async def get_metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
