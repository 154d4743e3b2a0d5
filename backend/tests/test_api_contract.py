from fastapi.routing import APIRoute

from app.main import app


EXPECTED_HTTP_ENDPOINTS: set[tuple[str, str]] = {
    ("/api/health", "get"),
    ("/api/health/live", "get"),
    ("/api/health/ready", "get"),
    ("/api/schedule-configs/presets", "get"),
    ("/api/schedule-configs/section/{section_id}", "get"),
    ("/api/schedule-configs/section/{section_id}", "put"),
    ("/api/schedule-configs/section/{section_id}/impact", "post"),
    ("/api/schedule-configs/section/{section_id}/break-slots/apply", "post"),
    ("/api/schedule-configs/section/{section_id}/time-slots", "get"),
    ("/api/sections/{section_id}/course-assignments", "get"),
    ("/api/schedules", "get"),
    ("/api/schedules", "post"),
    ("/api/schedules/batch", "post"),
    ("/api/schedules/{schedule_id}", "put"),
    ("/api/schedules/{schedule_id}", "delete"),
    ("/api/schedule-sessions", "post"),
    ("/api/schedule-sessions/{session_id}", "get"),
    ("/api/schedule-sessions/{session_id}", "delete"),
    ("/api/schedule-sessions/{session_id}/drops", "post"),
    ("/api/schedule-sessions/{session_id}/moves", "post"),
    ("/api/schedule-sessions/{session_id}/schedules/{schedule_id}", "delete"),
    ("/api/schedule-sessions/{session_id}/discard", "post"),
    ("/api/schedule-sessions/{session_id}/commit", "post"),
}


def test_frontend_consumed_http_endpoints_are_exposed_by_backend() -> None:
    available = {
        (route.path, method.lower())
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
        if method not in {"HEAD", "OPTIONS"}
    }

    missing = sorted(EXPECTED_HTTP_ENDPOINTS - available)
    assert not missing, f"Frontend API contract mismatch. Missing backend endpoints: {missing}"
