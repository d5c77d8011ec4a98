"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from auranut.api.models import (
    ChatRequest,
    ExerciseRequest,
    FoodSearchRequest,
    GoalsUpdateRequest,
    LogFoodRequest,
    LogoutRequest,
    ScanMealRequest,
    ThemeRequest,
    WaterRequest,
    WeightRequest,
)
from auranut.app_logging import configure_logging
from auranut.containers import AppContainer
from auranut.domain.ai import OnboardingProfile
from auranut.domain.models import ChatMessage, MealType
from auranut.services.sessions import (
    InvalidTransitionError,
    NotLoggedInError,
    RequestInFlightError,
    SessionResetError,
    SessionService,
)
from auranut.services.state_store import (
    exercise_to_dict,
    food_to_dict,
    goals_to_dict,
    log_to_dict,
)

_ERROR_STATUS = {
    NotLoggedInError: status.HTTP_401_UNAUTHORIZED,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    RequestInFlightError: status.HTTP_429_TOO_MANY_REQUESTS,
    SessionResetError: status.HTTP_409_CONFLICT,
    ValueError: 422,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    for error_type, status_code in _ERROR_STATUS.items():
        app.add_exception_handler(error_type, _error_handler(status_code))

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/auth/login")
    async def login(request: Request) -> dict[str, object]:
        """Sign in with the mock identity provider."""
        session = _session(request)
        user = await session.sign_in()
        return {"user": user, "phase": session.phase}

    @app.post("/auth/logout")
    async def logout(body: LogoutRequest, request: Request) -> dict[str, object]:
        """Clear all local data once the user confirms."""
        session = _session(request)
        cleared = session.logout(confirmed=body.confirm)
        return {"cleared": cleared, "phase": session.phase}

    @app.get("/session")
    async def session_state(request: Request) -> dict[str, object]:
        """Return the session phase, identity, goals and theme."""
        session = _session(request)
        return {
            "phase": session.phase,
            "user": session.user,
            "goals": goals_to_dict(session.goals) if session.goals else None,
            "theme": session.theme,
        }

    @app.post("/onboarding")
    async def onboarding(
        profile: OnboardingProfile, request: Request
    ) -> dict[str, object]:
        """Compute goals for the profile and finish onboarding."""
        session = _session(request)
        outcome = await session.onboard(profile)
        response: dict[str, object] = {
            "goals": goals_to_dict(outcome.goals),
            "usedFallback": outcome.used_fallback,
        }
        if outcome.used_fallback:
            response["message"] = (
                "Could not generate a personalized plan. Using default goals."
            )
        return response

    @app.patch("/goals")
    async def update_goals(
        body: GoalsUpdateRequest, request: Request
    ) -> dict[str, object]:
        """Apply settings edits to the profile and targets."""
        goals = _session(request).update_goals(**body.changes())
        return {"goals": goals_to_dict(goals)}

    @app.get("/today")
    async def today(request: Request) -> dict[str, object]:
        """Return today's log with derived statistics."""
        session = _session(request)
        summary = session.dashboard()
        return {"log": log_to_dict(session.today_log()), "summary": summary}

    @app.post("/meals/{meal_type}")
    async def log_food(
        meal_type: MealType, body: LogFoodRequest, request: Request
    ) -> dict[str, object]:
        """Append foods to one of today's meal slots."""
        items = [item.to_domain() for item in body.items]
        log = _session(request).log_food(meal_type, items)
        return {"log": log_to_dict(log)}

    @app.post("/foods/search")
    async def search_food(
        body: FoodSearchRequest, request: Request
    ) -> dict[str, object]:
        """Look up candidate foods by name."""
        results = await _session(request).search_food(body.query)
        if results is None:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Food search is unavailable right now.",
            )
        return {"items": [food_to_dict(item) for item in results]}

    @app.post("/foods/scan")
    async def scan_meal(body: ScanMealRequest, request: Request) -> dict[str, object]:
        """Identify a meal photo and log it."""
        try:
            image_bytes = base64.b64decode(body.image_base64, validate=True)
        except binascii.Error as exc:
            raise ValueError("imageBase64 is not valid base64.") from exc
        item = await _session(request).scan_meal(
            image_bytes, body.mime_type, body.meal_type
        )
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not identify the meal. Please try again.",
            )
        return {"item": food_to_dict(item), "mealType": body.meal_type}

    @app.post("/exercises")
    async def log_exercise(
        body: ExerciseRequest, request: Request
    ) -> dict[str, object]:
        """Estimate calories for an activity and log it."""
        item = await _session(request).log_exercise(
            body.name, body.duration, body.unit
        )
        if item is None:
            logger.info("Exercise not logged: estimate unavailable")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not estimate calories burned. Please try again.",
            )
        return {"exercise": exercise_to_dict(item)}

    @app.post("/weight")
    async def log_weight(body: WeightRequest, request: Request) -> dict[str, object]:
        """Record today's body weight."""
        session = _session(request)
        entry = session.log_weight(body.weight)
        return {
            "entry": {"date": entry.date, "weight": entry.weight},
            "currentWeight": session.goals.current_weight if session.goals else None,
        }

    @app.post("/water")
    async def adjust_water(body: WaterRequest, request: Request) -> dict[str, object]:
        """Add or remove glasses of water for today."""
        log = _session(request).adjust_water(body.delta)
        return {"waterIntake": log.water_intake}

    @app.get("/progress")
    async def progress(request: Request) -> dict[str, object]:
        """Return chart series for weight and calorie history."""
        session = _session(request)
        return {
            "weight": [
                {"date": entry.date, "weight": entry.weight}
                for entry in session.weight_series()
            ],
            "calories": session.calorie_history(),
        }

    @app.get("/coach/messages")
    async def chat_history(request: Request) -> dict[str, object]:
        """Return the coach conversation."""
        return {"messages": _messages(_session(request).chat_history)}

    @app.post("/coach/messages")
    async def send_chat(body: ChatRequest, request: Request) -> dict[str, object]:
        """Send a message to the coach and return its reply."""
        reply = await _session(request).send_chat_message(body.text)
        return {"reply": _messages([reply])[0]}

    @app.delete("/coach/messages")
    async def clear_chat(request: Request) -> dict[str, object]:
        """Reset the coach conversation."""
        return {"messages": _messages(_session(request).clear_chat())}

    @app.post("/analysis")
    async def deep_analysis(request: Request) -> dict[str, str]:
        """Return a long-form analysis of recent logs."""
        return {"analysis": await _session(request).request_deep_analysis()}

    @app.put("/theme")
    async def set_theme(body: ThemeRequest, request: Request) -> dict[str, str]:
        """Switch the UI theme."""
        _session(request).set_theme(body.theme)
        return {"theme": body.theme}

    return app


def _session(request: Request) -> SessionService:
    state_container: AppContainer = request.app.state.container
    return state_container.session_service


def _messages(messages: list[ChatMessage]) -> list[dict[str, object]]:
    return [
        {"role": msg.role, "text": msg.text, "timestamp": msg.timestamp}
        for msg in messages
    ]


def _error_handler(
    status_code: int,
) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler
