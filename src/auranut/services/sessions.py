"""Session state machine owning every tracked collection."""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum
from uuid import uuid4

from auranut.domain import tracking
from auranut.domain.ai import DEFAULT_TARGETS, GoalTargets, OnboardingProfile
from auranut.domain.models import (
    ChatMessage,
    ChatRole,
    DailyLog,
    DurationUnit,
    ExerciseItem,
    FoodItem,
    MealType,
    Theme,
    User,
    UserGoals,
    WeightEntry,
)
from auranut.services.ai_gateway import ANALYSIS_FALLBACK, CHAT_FALLBACK, AIGateway
from auranut.services.identity import IdentityService
from auranut.services.state_store import StateRepository

_logger = logging.getLogger(__name__)

CHAT_CLEARED = "Chat cleared! How can I help you now?"


class SessionPhase(StrEnum):
    """Top-level phase of the app session."""

    LOGGED_OUT = "logged_out"
    ONBOARDING = "onboarding"
    ACTIVE = "active"


class RequestState(StrEnum):
    """Lifecycle of one AI-backed action."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TrackedAction(StrEnum):
    """Actions that wait on the AI gateway."""

    ONBOARD = "onboard"
    SEARCH_FOOD = "search_food"
    SCAN_MEAL = "scan_meal"
    LOG_EXERCISE = "log_exercise"
    CHAT = "chat"
    DEEP_ANALYSIS = "deep_analysis"


class SessionError(RuntimeError):
    """Base error for rejected session operations."""


class NotLoggedInError(SessionError):
    """Raised when an operation needs a signed-in user."""


class InvalidTransitionError(SessionError):
    """Raised when an operation is not allowed in the current phase."""


class RequestInFlightError(SessionError):
    """Raised when an action is re-entered before its request resolves."""


class SessionResetError(SessionError):
    """Raised when the session was reset while a request was in flight."""


@dataclass(frozen=True)
class DashboardSummary:
    """Derived statistics for today's log."""

    date: str
    consumed_calories: float
    burned_calories: float
    net_calories: float
    remaining_calories: float
    calorie_goal: float
    water_intake: int
    water_goal: int
    hydration_ratio: float
    protein: float
    carbs: float
    fat: float
    protein_goal: float
    carbs_goal: float
    fat_goal: float


@dataclass(frozen=True)
class OnboardingOutcome:
    """Goals chosen at onboarding and whether defaults were used."""

    goals: UserGoals
    used_fallback: bool


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionService:
    """Single holder of the user's state for the running session.

    Every mutation applies a pure derivation from ``auranut.domain.tracking``,
    swaps the in-memory value and writes exactly the changed slice through
    the repository. Writes are best-effort and never roll back memory.

    Logout starts a new generation. Model results that arrive for an older
    generation are dropped with ``SessionResetError`` and touch no state.
    """

    repository: StateRepository
    gateway: AIGateway
    identity: IdentityService
    clock: Callable[[], date] = date.today
    now_ms: Callable[[], int] = _now_ms
    user: User | None = None
    goals: UserGoals | None = None
    daily_logs: list[DailyLog] = field(default_factory=list)
    weight_history: list[WeightEntry] = field(default_factory=list)
    chat_history: list[ChatMessage] = field(default_factory=list)
    theme: Theme = Theme.LIGHT
    _requests: dict[TrackedAction, RequestState] = field(default_factory=dict)
    _generation: int = 0

    def load(self) -> None:
        """Read every slice from persistence into memory."""
        self.theme = self.repository.load_theme()
        self.user = self.repository.load_user()
        self.goals = self.repository.load_goals()
        self.daily_logs = self.repository.load_daily_logs()
        self.weight_history = self.repository.load_weight_history()
        self.chat_history = self.repository.load_chat_history()
        _logger.info(
            "Session loaded: phase=%s logs=%s weights=%s",
            self.phase.value,
            len(self.daily_logs),
            len(self.weight_history),
        )

    @property
    def phase(self) -> SessionPhase:
        if self.user is None:
            return SessionPhase.LOGGED_OUT
        if self.goals is None:
            return SessionPhase.ONBOARDING
        return SessionPhase.ACTIVE

    def request_state(self, action: TrackedAction) -> RequestState:
        """Return the latest request state for an action."""
        return self._requests.get(action, RequestState.IDLE)

    async def sign_in(self) -> User:
        """Authenticate with the mock provider and start the session."""
        user = await self.identity.authenticate()
        self.login(user)
        return user

    def login(self, user: User) -> None:
        """Set the signed-in identity."""
        if self.user is not None:
            raise InvalidTransitionError("A user is already signed in")
        self.user = user
        self.repository.save_user(user)
        _logger.info("User signed in: id=%s", user.id)

    def logout(self, *, confirmed: bool) -> bool:
        """Clear the whole session and persisted store once confirmed."""
        if not confirmed:
            return False
        self.user = None
        self.goals = None
        self.daily_logs = []
        self.weight_history = []
        self.chat_history = []
        self.theme = Theme.LIGHT
        self._generation += 1
        self._requests.clear()
        self.repository.clear()
        self.chat_history = self.repository.load_chat_history()
        _logger.info("Session reset on logout")
        return True

    def complete_onboarding(self, goals: UserGoals) -> None:
        """Set goals for a freshly signed-in user."""
        self._require_user()
        if self.goals is not None:
            raise InvalidTransitionError("Onboarding has already been completed")
        self.goals = goals
        self.repository.save_goals(goals)
        _logger.info(
            "Onboarding complete: calorie_goal=%s", goals.daily_calorie_goal
        )

    async def onboard(self, profile: OnboardingProfile) -> OnboardingOutcome:
        """Compute targets for a profile, falling back to defaults."""
        self._require_user()
        if self.goals is not None:
            raise InvalidTransitionError("Onboarding has already been completed")
        generation = self._begin(TrackedAction.ONBOARD)
        succeeded = False
        try:
            targets = await self.gateway.compute_initial_goals(profile)
            self._ensure_current(generation)
            used_fallback = targets is None
            if targets is None:
                _logger.warning("Goal calculation unavailable, using defaults")
            goals = _goals_from_profile(profile, targets or DEFAULT_TARGETS)
            self.complete_onboarding(goals)
            succeeded = True
        finally:
            self._finish(TrackedAction.ONBOARD, generation, succeeded)
        return OnboardingOutcome(goals=goals, used_fallback=used_fallback)

    def update_goals(self, **changes: object) -> UserGoals:
        """Apply profile edits from the settings screen."""
        goals = self._require_goals()
        updated = replace(goals, **changes)
        self.goals = updated
        self.repository.save_goals(updated)
        return updated

    def today_log(self) -> DailyLog:
        """Return today's log, creating it on first access."""
        self._require_user()
        day = tracking.today_key(self.clock())
        logs, log = tracking.ensure_today_log(self.daily_logs, day)
        if len(logs) != len(self.daily_logs):
            self.daily_logs = logs
            self.repository.save_daily_logs(logs)
            _logger.info("Created daily log: date=%s", day)
        return log

    def log_food(self, meal_type: MealType, items: Sequence[FoodItem]) -> DailyLog:
        """Append foods to a meal slot of today's log."""
        log = tracking.add_foods_to_meal(self.today_log(), meal_type, items)
        self._store_log(log)
        _logger.info(
            "Logged food: date=%s meal=%s items=%s",
            log.date,
            meal_type.value,
            len(items),
        )
        return log

    async def log_exercise(
        self,
        name: str,
        duration: float,
        unit: DurationUnit = DurationUnit.MINUTES,
    ) -> ExerciseItem | None:
        """Estimate calories for an activity and log it.

        Returns None and leaves the log untouched when no estimate is available.
        """
        goals = self._require_goals()
        generation = self._begin(TrackedAction.LOG_EXERCISE)
        item: ExerciseItem | None = None
        try:
            calories = await self.gateway.estimate_calories_burned(
                name, duration, unit, goals.current_weight
            )
            self._ensure_current(generation)
            if calories is not None:
                item = ExerciseItem(
                    id=str(uuid4()),
                    name=name,
                    duration=duration,
                    duration_unit=unit,
                    calories_burned=calories,
                )
                log = tracking.add_exercise(self.today_log(), item)
                self._store_log(log)
                _logger.info(
                    "Logged exercise: date=%s calories=%s", log.date, calories
                )
        finally:
            self._finish(TrackedAction.LOG_EXERCISE, generation, item is not None)
        return item

    def log_weight(self, value: float) -> WeightEntry:
        """Record today's weight and make it the current weight."""
        self._require_user()
        if value <= 0:
            raise ValueError("Weight must be positive")
        entry = WeightEntry(date=tracking.today_key(self.clock()), weight=value)
        history, goals = tracking.upsert_weight(self.weight_history, entry, self.goals)
        self.weight_history = history
        self.repository.save_weight_history(history)
        if goals is not None:
            self.goals = goals
            self.repository.save_goals(goals)
        return entry

    def adjust_water(self, delta: int) -> DailyLog:
        """Add or remove glasses of water from today's log."""
        log = tracking.adjust_water(self.today_log(), delta)
        self._store_log(log)
        return log

    async def search_food(self, query: str) -> list[FoodItem] | None:
        """Look up candidate foods by name."""
        self._require_user()
        generation = self._begin(TrackedAction.SEARCH_FOOD)
        results: list[FoodItem] | None = None
        try:
            results = await self.gateway.lookup_food_by_name(query)
            self._ensure_current(generation)
        finally:
            self._finish(TrackedAction.SEARCH_FOOD, generation, results is not None)
        return results

    async def scan_meal(
        self,
        image_bytes: bytes,
        mime_type: str | None = None,
        meal_type: MealType = MealType.LUNCH,
    ) -> FoodItem | None:
        """Identify a food from a photo and log it on success."""
        self._require_user()
        generation = self._begin(TrackedAction.SCAN_MEAL)
        item: FoodItem | None = None
        try:
            item = await self.gateway.lookup_food_by_image(image_bytes, mime_type)
            self._ensure_current(generation)
            if item is not None:
                self.log_food(meal_type, [item])
        finally:
            self._finish(TrackedAction.SCAN_MEAL, generation, item is not None)
        return item

    async def send_chat_message(self, text: str) -> ChatMessage:
        """Send a message to the coach and record both turns."""
        self._require_user()
        message = text.strip()
        if not message:
            raise ValueError("Message must not be empty")
        generation = self._begin(TrackedAction.CHAT)
        reply_text = CHAT_FALLBACK
        try:
            history = list(self.chat_history)
            self._append_chat(ChatRole.USER, message)
            today = self.today_log() if self.goals is not None else None
            reply_text = await self.gateway.chat_reply(
                history, message, self.goals, today
            )
            self._ensure_current(generation)
            reply = self._append_chat(ChatRole.MODEL, reply_text)
        finally:
            self._finish(TrackedAction.CHAT, generation, reply_text != CHAT_FALLBACK)
        return reply

    def clear_chat(self) -> list[ChatMessage]:
        """Reset the conversation to a single greeting."""
        self.chat_history = [
            ChatMessage(role=ChatRole.MODEL, text=CHAT_CLEARED, timestamp=self.now_ms())
        ]
        self.repository.save_chat_history(self.chat_history)
        return self.chat_history

    async def request_deep_analysis(self) -> str:
        """Return a long-form analysis or a fixed apology."""
        goals = self._require_goals()
        generation = self._begin(TrackedAction.DEEP_ANALYSIS)
        report = ANALYSIS_FALLBACK
        try:
            report = await self.gateway.deep_analysis(self.daily_logs, goals)
            self._ensure_current(generation)
        finally:
            self._finish(
                TrackedAction.DEEP_ANALYSIS, generation, report != ANALYSIS_FALLBACK
            )
        return report

    def set_theme(self, theme: Theme) -> None:
        """Switch the UI theme."""
        self.theme = theme
        self.repository.save_theme(theme)

    def dashboard(self) -> DashboardSummary:
        """Return derived statistics for today."""
        goals = self._require_goals()
        log = self.today_log()
        stats = tracking.daily_stats(log)
        return DashboardSummary(
            date=log.date,
            consumed_calories=stats.consumed_calories,
            burned_calories=stats.burned_calories,
            net_calories=stats.net_calories,
            remaining_calories=tracking.net_remaining(
                stats.consumed_calories,
                stats.burned_calories,
                goals.daily_calorie_goal,
            ),
            calorie_goal=goals.daily_calorie_goal,
            water_intake=log.water_intake,
            water_goal=goals.daily_water_goal,
            hydration_ratio=tracking.hydration_ratio(
                log.water_intake, goals.daily_water_goal
            ),
            protein=stats.protein,
            carbs=stats.carbs,
            fat=stats.fat,
            protein_goal=goals.daily_protein_goal,
            carbs_goal=goals.daily_carbs_goal,
            fat_goal=goals.daily_fat_goal,
        )

    def calorie_history(self) -> list[tracking.CaloriePoint]:
        """Return consumed calories per logged day against the goal."""
        goals = self._require_goals()
        return tracking.calorie_history(self.daily_logs, goals.daily_calorie_goal)

    def weight_series(self) -> list[WeightEntry]:
        """Return the weight history ordered by date."""
        return sorted(self.weight_history, key=lambda entry: entry.date)

    def _store_log(self, log: DailyLog) -> None:
        self.daily_logs = tracking.replace_log(self.daily_logs, log)
        self.repository.save_daily_logs(self.daily_logs)

    def _append_chat(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text, timestamp=self.now_ms())
        self.chat_history = [*self.chat_history, message]
        self.repository.save_chat_history(self.chat_history)
        return message

    def _require_user(self) -> User:
        if self.user is None:
            raise NotLoggedInError("Sign in first")
        return self.user

    def _require_goals(self) -> UserGoals:
        self._require_user()
        if self.goals is None:
            raise InvalidTransitionError("Complete onboarding first")
        return self.goals

    def _begin(self, action: TrackedAction) -> int:
        if self.request_state(action) is RequestState.IN_FLIGHT:
            raise RequestInFlightError(f"{action.value} is already in progress")
        self._requests[action] = RequestState.IN_FLIGHT
        return self._generation

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            _logger.info("Discarding result from a reset session")
            raise SessionResetError("The session was reset during the request")

    def _finish(
        self, action: TrackedAction, generation: int, succeeded: bool
    ) -> None:
        if generation != self._generation:
            return
        self._requests[action] = (
            RequestState.SUCCEEDED if succeeded else RequestState.FAILED
        )


def _goals_from_profile(profile: OnboardingProfile, targets: GoalTargets) -> UserGoals:
    return UserGoals(
        current_weight=profile.current_weight,
        goal_weight=profile.goal_weight,
        height=profile.height,
        age=profile.age,
        gender=profile.gender,
        activity_level=profile.activity_level,
        daily_calorie_goal=targets.daily_calorie_goal,
        daily_protein_goal=targets.daily_protein_goal,
        daily_carbs_goal=targets.daily_carbs_goal,
        daily_fat_goal=targets.daily_fat_goal,
        daily_water_goal=max(1, round(targets.daily_water_goal)),
    )
