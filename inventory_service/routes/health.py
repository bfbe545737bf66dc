from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

@router.get("/health")
async def health_check(request: Request):
    """Basic health check, including the broker connection state"""
    messaging = getattr(request.app.state, "messaging", None)
    broker = messaging.connection.state.value if messaging else "DISCONNECTED"
    return {"status": "healthy", "service": "Inventory Service", "broker": broker}
