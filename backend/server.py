from fastapi import FastAPI, APIRouter, Depends, HTTPException, Query
from starlette.middleware.cors import CORSMiddleware
from contextlib import suppress
import asyncio
import logging
from typing import Optional

from racket_coach import (
    Focus,
    RacketCoach,
    Skeleton,
    build_system_instruction,
    get_racket_coach,
)
from backend.config import (
    CORS_ORIGINS,
    FRAME_INTERVAL_SECONDS,
    LOG_LEVEL,
    MIN_CUE_INTERVAL_SECONDS,
    STATE_TICK_SECONDS,
)
from backend.models.coach_state import (
    CommandRequest,
    CommandResponse,
    CueResponse,
    EndSessionResponse,
    FocusRequest,
    FrameRequest,
    FrameResponse,
    ReviewResponse,
    StartSessionRequest,
    StatusResponse,
    SystemInstructionResponse,
)


# Create the main app without a prefix
app = FastAPI(title="Racket Coach API")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# One coach per process; the lock inside RacketCoach serializes writers
coach = get_racket_coach(
    frame_interval=FRAME_INTERVAL_SECONDS,
    min_cue_interval=MIN_CUE_INTERVAL_SECONDS,
)
tick_task: Optional[asyncio.Task] = None


def get_coach() -> RacketCoach:
    return coach


def parse_focus(value: str) -> Focus:
    try:
        return Focus[value.strip().upper()]
    except KeyError:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown focus '{value}'. Use movement, forehand, backhand, serve or general."
        )


# ============ ROUTES ============

@api_router.get("/")
async def root():
    return {"message": "Racket Coach API"}


@api_router.get("/health")
async def health():
    return {"status": "ok"}


@api_router.post("/session/start", response_model=StatusResponse)
async def start_session(data: StartSessionRequest, coach: RacketCoach = Depends(get_coach)):
    """Start a session. Starting while one is running is a no-op."""
    coach.start_session(parse_focus(data.focus))
    return coach.status()


@api_router.post("/session/end", response_model=EndSessionResponse)
async def end_session(coach: RacketCoach = Depends(get_coach)):
    """End the running session. Ending with nothing running is a no-op."""
    review = coach.end_session()
    return EndSessionResponse(
        status=coach.status(),
        review=review_response(review) if review is not None else None,
    )


@api_router.post("/session/mute", response_model=StatusResponse)
async def mute(coach: RacketCoach = Depends(get_coach)):
    coach.mute()
    return coach.status()


@api_router.post("/session/unmute", response_model=StatusResponse)
async def unmute(coach: RacketCoach = Depends(get_coach)):
    coach.unmute()
    return coach.status()


@api_router.post("/session/focus", response_model=StatusResponse)
async def set_focus(data: FocusRequest, coach: RacketCoach = Depends(get_coach)):
    coach.set_focus(parse_focus(data.focus))
    return coach.status()


@api_router.post("/frames", response_model=FrameResponse)
async def submit_frame(data: FrameRequest, coach: RacketCoach = Depends(get_coach)):
    """
    Submit one frame of pre-detected skeletons.

    Frames sent faster than the frame interval, or with no active
    session, are dropped and reported as not accepted.
    """
    skeletons = [Skeleton.from_dict(s.model_dump()) for s in data.skeletons]
    update = coach.process_detections(skeletons)
    if update is None:
        return FrameResponse(accepted=False)

    return FrameResponse(
        accepted=True,
        state=update.state.value,
        frame_number=update.frame_number,
        reliable=update.metrics.is_reliable,
        issues_counted=[kind.name.lower() for kind in update.issues_counted],
        tactical_note=update.tactical_note,
        cue=update.cue.text if update.cue else None,
    )


@api_router.get("/status", response_model=StatusResponse)
async def get_status(coach: RacketCoach = Depends(get_coach)):
    return coach.status()


@api_router.get("/logs")
async def get_logs(coach: RacketCoach = Depends(get_coach)):
    return {"logs": coach.get_recent_logs()}


@api_router.post("/cue", response_model=CueResponse)
async def consume_cue(coach: RacketCoach = Depends(get_coach)):
    """Drain the pending cue slot; the voice layer polls this."""
    return CueResponse(cue=coach.consume_pending_cue())


@api_router.get("/tactical", response_model=CueResponse)
async def get_tactical_cue(coach: RacketCoach = Depends(get_coach)):
    return CueResponse(cue=coach.tactical_cue())


@api_router.post("/command", response_model=CommandResponse)
async def handle_command(data: CommandRequest, coach: RacketCoach = Depends(get_coach)):
    """Route a voice transcript to a coach action."""
    command = coach.handle_command(data.transcript)
    if command is None:
        return CommandResponse(matched=False)

    return CommandResponse(
        matched=True,
        command=command.command_type.value,
        focus=command.focus.value if command.focus else None,
        cue=coach.pending_cue,
    )


@api_router.get("/review", response_model=ReviewResponse)
async def get_review(coach: RacketCoach = Depends(get_coach)):
    review = coach.last_review
    if review is None:
        raise HTTPException(status_code=404, detail="No review available yet")
    return review_response(review)


@api_router.delete("/review")
async def dismiss_review(coach: RacketCoach = Depends(get_coach)):
    coach.dismiss_review()
    return {"success": True}


@api_router.get("/voice/system-instruction", response_model=SystemInstructionResponse)
async def get_system_instruction(coach_mode: bool = Query(True, description="Coach prompt or general assistant")):
    return SystemInstructionResponse(
        coach_mode=coach_mode,
        instruction=build_system_instruction(coach_mode, MIN_CUE_INTERVAL_SECONDS),
    )


def review_response(review) -> ReviewResponse:
    data = review.to_dict()
    data["summary_text"] = review.summary_text
    data["spoken_summary"] = review.spoken_summary
    return ReviewResponse(**data)


# ============ SESSION CLOCK ============

async def tick_loop():
    """Advance the session clock while the service runs."""
    while True:
        try:
            coach.tick()
        except Exception as e:
            logger.error(f"Session tick failed: {e}")
        await asyncio.sleep(STATE_TICK_SECONDS)


# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def start_tick_loop():
    global tick_task
    tick_task = asyncio.create_task(tick_loop())
    logger.info("Session clock started")


@app.on_event("shutdown")
async def stop_tick_loop():
    if tick_task is not None:
        tick_task.cancel()
        with suppress(asyncio.CancelledError):
            await tick_task
        logger.info("Session clock stopped")
