"""Tests for the HTTP surface."""

import base64

from fastapi.testclient import TestClient

from auranut.api.app import create_app
from auranut.containers import AppContainer
from auranut.services.sessions import CHAT_CLEARED
from tests.conftest import FakeGenerativeClient


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def _onboarded(container: AppContainer) -> TestClient:
    client = _client(container)
    client.post("/auth/login")
    client.post("/onboarding", json={"current_weight": 72, "goal_weight": 68})
    return client


def _food_payload(calories: float) -> dict[str, object]:
    return {
        "name": "Avocado toast",
        "calories": calories,
        "protein": 12,
        "carbs": 40,
        "fat": 18,
        "servingSize": 1,
        "servingUnit": "slice",
        "emoji": "🥑",
    }


def test_health_check(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_tracking_requires_login(container: AppContainer) -> None:
    client = _client(container)

    assert client.get("/today").status_code == 401
    assert client.post("/water", json={"delta": 1}).status_code == 401


def test_login_then_onboarding(container: AppContainer) -> None:
    client = _client(container)

    login = client.post("/auth/login")
    assert login.status_code == 200
    assert login.json()["phase"] == "onboarding"
    assert login.json()["user"]["email"] == "hello@auranut.ai"
    assert client.post("/auth/login").status_code == 409

    onboarding = client.post("/onboarding", json={"age": 40, "current_weight": 90})
    assert onboarding.status_code == 200
    body = onboarding.json()
    assert body["usedFallback"] is False
    assert body["goals"]["dailyCalorieGoal"] == 2200
    assert body["goals"]["currentWeight"] == 90
    assert client.get("/session").json()["phase"] == "active"


def test_onboarding_fallback_message(
    container: AppContainer, generative_client: FakeGenerativeClient
) -> None:
    generative_client.fail_schemas.add("daily_goals")
    client = _client(container)
    client.post("/auth/login")

    body = client.post("/onboarding", json={}).json()

    assert body["usedFallback"] is True
    assert body["goals"]["dailyCalorieGoal"] == 2000
    assert "default goals" in body["message"]


def test_log_food_and_read_dashboard(container: AppContainer) -> None:
    client = _onboarded(container)

    response = client.post("/meals/Breakfast", json={"items": [_food_payload(500)]})
    assert response.status_code == 200
    assert len(response.json()["log"]["meals"]["Breakfast"]) == 1

    today = client.get("/today").json()
    assert today["summary"]["consumed_calories"] == 500
    assert today["summary"]["remaining_calories"] == 1700
    assert today["log"]["date"] == "2024-01-05"


def test_log_food_rejects_empty_items(container: AppContainer) -> None:
    client = _onboarded(container)

    assert client.post("/meals/Lunch", json={"items": []}).status_code == 422
    assert client.post("/meals/Brunch", json={"items": []}).status_code == 422


def test_search_food_returns_grounded_candidates(container: AppContainer) -> None:
    client = _onboarded(container)

    response = client.post("/foods/search", json={"query": "oatmeal"})

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["source"] for item in items] == ["search", "search"]
    assert items[0]["groundingUrls"] == ["https://example.com/oats"]


def test_search_food_unavailable(
    container: AppContainer, generative_client: FakeGenerativeClient
) -> None:
    generative_client.fail_schemas.add("food_search")
    client = _onboarded(container)

    assert client.post("/foods/search", json={"query": "kale"}).status_code == 502


def test_scan_meal_logs_to_requested_slot(container: AppContainer) -> None:
    client = _onboarded(container)
    image = base64.b64encode(b"\xff\xd8\xff\xe0photo").decode("ascii")

    response = client.post(
        "/foods/scan", json={"imageBase64": image, "mealType": "Dinner"}
    )

    assert response.status_code == 200
    assert response.json()["mealType"] == "Dinner"
    dinner = client.get("/today").json()["log"]["meals"]["Dinner"]
    assert [item["name"] for item in dinner] == ["Grilled chicken salad"]


def test_scan_meal_rejects_invalid_base64(container: AppContainer) -> None:
    client = _onboarded(container)

    response = client.post("/foods/scan", json={"imageBase64": "not base64!"})

    assert response.status_code == 422


def test_exercise_estimate_unavailable(
    container: AppContainer, generative_client: FakeGenerativeClient
) -> None:
    generative_client.fail_schemas.add("calories_burned")
    client = _onboarded(container)

    response = client.post("/exercises", json={"name": "Hiking", "duration": 90})

    assert response.status_code == 502
    assert client.get("/today").json()["log"]["exercises"] == []


def test_exercise_is_logged(container: AppContainer) -> None:
    client = _onboarded(container)

    response = client.post(
        "/exercises", json={"name": "Tennis", "duration": 1, "unit": "hours"}
    )

    assert response.status_code == 200
    exercise = response.json()["exercise"]
    assert exercise["caloriesBurned"] == 300
    assert exercise["durationUnit"] == "hours"


def test_weight_and_water_updates(container: AppContainer) -> None:
    client = _onboarded(container)

    weight = client.post("/weight", json={"weight": 71.2}).json()
    assert weight["entry"] == {"date": "2024-01-05", "weight": 71.2}
    assert weight["currentWeight"] == 71.2
    assert client.post("/weight", json={"weight": -1}).status_code == 422

    client.post("/water", json={"delta": 2})
    assert client.post("/water", json={"delta": -10}).json() == {"waterIntake": 0}

    progress = client.get("/progress").json()
    assert progress["weight"] == [{"date": "2024-01-05", "weight": 71.2}]
    assert progress["calories"][0]["goal"] == 2200


def test_coach_conversation(container: AppContainer) -> None:
    client = _onboarded(container)

    reply = client.post("/coach/messages", json={"text": "How is my water?"})
    assert reply.status_code == 200
    assert reply.json()["reply"]["role"] == "model"

    messages = client.get("/coach/messages").json()["messages"]
    assert [msg["role"] for msg in messages] == ["model", "user", "model"]

    cleared = client.delete("/coach/messages").json()["messages"]
    assert [msg["text"] for msg in cleared] == [CHAT_CLEARED]
    assert client.post("/coach/messages", json={"text": "   "}).status_code == 422


def test_deep_analysis_and_theme(container: AppContainer) -> None:
    client = _onboarded(container)

    analysis = client.post("/analysis").json()["analysis"]
    theme = client.put("/theme", json={"theme": "dark"}).json()

    assert analysis == "Great job staying hydrated!"
    assert theme == {"theme": "dark"}
    assert client.get("/session").json()["theme"] == "dark"


def test_goal_edits(container: AppContainer) -> None:
    client = _onboarded(container)

    response = client.patch(
        "/goals", json={"dailyCalorieGoal": 1900, "activityLevel": "active"}
    )

    goals = response.json()["goals"]
    assert goals["dailyCalorieGoal"] == 1900
    assert goals["activityLevel"] == "active"
    assert goals["goalWeight"] == 68


def test_logout_requires_confirmation(container: AppContainer) -> None:
    client = _onboarded(container)

    declined = client.post("/auth/logout", json={"confirm": False}).json()
    assert declined == {"cleared": False, "phase": "active"}

    confirmed = client.post("/auth/logout", json={"confirm": True}).json()
    assert confirmed == {"cleared": True, "phase": "logged_out"}
    assert client.get("/today").status_code == 401
