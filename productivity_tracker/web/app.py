from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from datetime import datetime
from typing import Callable, Dict, Optional
import logging
from pathlib import Path

from productivity_tracker.main import ProductivityTracker
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.errors import DatabaseError
from productivity_tracker.services.notifications import LogNotifier, NotificationSink
from productivity_tracker.services.tracking import TransitionResult
from productivity_tracker.config.settings import settings

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def _parse_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")


def _transition_response(tracker: ProductivityTracker, result: TransitionResult) -> Dict:
    if not result.ok:
        raise HTTPException(
            status_code=409,
            detail={"outcome": result.outcome.value, "message": result.message, "state": result.state.value}
        )
    return {
        "outcome": result.outcome.value,
        "state": result.state.value,
        "persisted": result.persisted,
        "session": tracker.metrics.session_report(result.session) if result.session else None,
    }


def create_app(db: Optional[DatabaseManager] = None,
               clock: Callable[[], datetime] = datetime.now,
               notifier: Optional[NotificationSink] = None) -> FastAPI:
    """Build the dashboard around one tracker instance

    Endpoints are async so every transition runs on the event loop thread.
    """
    tracker = ProductivityTracker(
        db=db or DatabaseManager(settings.DEFAULT_DB_PATH),
        clock=clock,
        notifier=notifier or LogNotifier()
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down dashboard")
        tracker.close()

    app = FastAPI(title="Productivity Tracker Dashboard", lifespan=lifespan)
    app.state.tracker = tracker

    def status_payload() -> Dict:
        now = tracker.clock()
        session = tracker.machine.current_session
        return {
            "state": tracker.machine.state.value,
            "session": tracker.metrics.session_report(session, now) if session else None,
            "today": tracker.metrics.get_daily_metrics(now.date())["summary"],
        }

    @app.get("/")
    async def dashboard(request: Request):
        """Main dashboard view"""
        try:
            return templates.TemplateResponse(
                request,
                "dashboard.html",
                {
                    "status": status_payload(),
                    "daily": tracker.metrics.get_daily_metrics(),
                    "weekly": tracker.metrics.get_weekly_metrics(),
                    "date": tracker.clock().strftime("%Y-%m-%d")
                }
            )
        except DatabaseError as e:
            logger.error(f"Dashboard error: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/api/status")
    async def get_status():
        return status_payload()

    @app.post("/api/session/start")
    async def start_session():
        return _transition_response(tracker, tracker.machine.start_session())

    @app.post("/api/session/stop")
    async def stop_session(reason: Optional[str] = None):
        return _transition_response(tracker, tracker.machine.end_session(reason))

    @app.post("/api/session/toggle")
    async def toggle_session():
        return _transition_response(tracker, tracker.machine.toggle_session())

    @app.post("/api/interruption/start")
    async def start_interruption(reason: Optional[str] = None):
        return _transition_response(tracker, tracker.machine.start_interruption(reason))

    @app.post("/api/interruption/end")
    async def end_interruption():
        return _transition_response(tracker, tracker.machine.end_interruption())

    @app.get("/api/metrics/daily/{date}")
    async def get_daily_metrics(date: str):
        """Get metrics for a specific date"""
        day = _parse_date(date)
        try:
            return tracker.metrics.get_daily_metrics(day.date())
        except DatabaseError as e:
            logger.error(f"Error getting daily metrics: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/api/metrics/range")
    async def get_metrics_range(start: str, end: str):
        """Get metrics for a date range"""
        start_date = _parse_date(start)
        end_date = _parse_date(end)
        if end_date < start_date:
            raise HTTPException(status_code=400, detail="End date is before start date")
        try:
            return tracker.metrics.export_timeframe(start_date, end_date)
        except DatabaseError as e:
            logger.error(f"Error getting metrics range: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/api/metrics/weekly")
    async def get_weekly_metrics():
        try:
            return tracker.metrics.get_weekly_metrics()
        except DatabaseError as e:
            logger.error(f"Error getting weekly metrics: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/api/sessions/{session_id}/timeline")
    async def get_session_timeline(session_id: str):
        session = tracker.db.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return tracker.metrics.session_report(session)

    @app.delete("/api/sessions/{session_id}")
    async def delete_session(session_id: str):
        result = tracker.machine.delete_session(session_id)
        if not result.ok:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"deleted": session_id, "state": result.state.value, "persisted": result.persisted}

    @app.exception_handler(500)
    async def server_error_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )

    return app
