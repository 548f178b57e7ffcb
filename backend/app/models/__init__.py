from app.models.therapy_session import TherapySession

__all__ = [
    "TherapySession",
]
