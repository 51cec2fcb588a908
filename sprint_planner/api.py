"""
FastAPI Backend for the Sprint Planner

Exposes the allocation engine over HTTP, both for posted inputs and for a
live run against Jira and Confluence.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .capacity import AvailabilitySignal, CapacityModel
from .config import Config, configure_logging
from .models import Commitment, Member, WorkItem
from .planner import plan_sprint
from .reporter import MarkdownReporter
from .scorer import ItemScorer
from .velocity import CompletedPeriod, VelocityModel
from .workflow import SprintPlanningWorkflow


logger = logging.getLogger(__name__)


# Global instances
config = Config()
reporter = MarkdownReporter(sprint_length_days=config.planning["sprint_length_days"])


# Pydantic models for API
class WorkItemIn(BaseModel):
    key: Optional[str] = None
    summary: str = ""
    type: str = ""
    priority: str = ""
    status: str = ""
    story_points: Any = None
    assignee: Optional[str] = None
    project: Optional[str] = None
    description: str = ""

    def to_item(self) -> WorkItem:
        return WorkItem.from_dict(self.model_dump())


class CompletedPeriodIn(BaseModel):
    items_completed: int
    items: list[WorkItemIn] = []


class MemberIn(BaseModel):
    name: str
    projects: list[str] = []
    ticket_count: int = 0


class SignalIn(BaseModel):
    content: str
    source: str = "Unknown"
    url: str = ""


class CommitmentIn(BaseModel):
    text: str
    priority: str = "medium"


class VelocityRequest(BaseModel):
    completed_periods: dict[str, list[CompletedPeriodIn]] = {}


class CapacityRequest(BaseModel):
    members: list[MemberIn] = []
    signals: list[SignalIn] = []
    completed_periods: dict[str, list[CompletedPeriodIn]] = {}


class ScoreRequest(BaseModel):
    items: list[WorkItemIn] = []
    carry_over: list[str] = []
    commitments: list[CommitmentIn] = []


class PlanRequest(BaseModel):
    items: list[WorkItemIn] = []
    members: list[MemberIn] = []
    completed_periods: dict[str, list[CompletedPeriodIn]] = {}
    signals: list[SignalIn] = []
    carry_over: list[str] = []
    commitments: list[CommitmentIn] = []


def _periods(data: dict[str, list[CompletedPeriodIn]]) -> dict[str, list[CompletedPeriod]]:
    return {
        project: [
            CompletedPeriod(
                items_completed=p.items_completed,
                items=[i.to_item() for i in p.items],
                index=index
            )
            for index, p in enumerate(periods, start=1)
        ]
        for project, periods in data.items()
    }


def _members(data: list[MemberIn]) -> list[Member]:
    return [Member(name=m.name, projects=list(m.projects), ticket_count=m.ticket_count) for m in data]


def _signals(data: list[SignalIn]) -> list[AvailabilitySignal]:
    return [AvailabilitySignal(content=s.content, source=s.source, url=s.url) for s in data]


def _commitments(data: list[CommitmentIn]) -> list[Commitment]:
    return [Commitment(text=c.text, priority=c.priority) for c in data]


def _plan(request: PlanRequest):
    planning = config.planning
    return plan_sprint(
        items=[i.to_item() for i in request.items],
        members=_members(request.members),
        completed_periods=_periods(request.completed_periods),
        signals=_signals(request.signals),
        carry_over=[WorkItem(key=k) for k in request.carry_over],
        commitments=_commitments(request.commitments),
        capacity_per_person=planning["capacity_per_person"],
        max_items_per_person=planning["max_items_per_person"],
        budget_margin=planning["budget_margin"]
    )


# Lifespan context manager
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging(config.log_level)
    logger.info("Sprint Planner API starting up")
    yield
    logger.info("Sprint Planner API shutting down")


# Create FastAPI app
app = FastAPI(
    title="Sprint Planner",
    description="Capacity-aware sprint allocation API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "integrations": {
            "jira": config.jira_configured,
            "confluence": config.confluence_url is not None
        }
    }


# Engine endpoints
@app.post("/api/velocity")
async def calculate_velocity(request: VelocityRequest):
    """Velocity per project from completed sprint history."""
    velocity = VelocityModel().calculate(_periods(request.completed_periods))
    return {project: v.to_dict() for project, v in velocity.items()}


@app.post("/api/capacity")
async def assess_capacity(request: CapacityRequest):
    """Team capacity and planning recommendation."""
    model = CapacityModel(default_capacity_per_person=config.planning["capacity_per_person"])
    assessment = model.assess(_members(request.members), _signals(request.signals))
    velocity = VelocityModel().calculate(_periods(request.completed_periods))
    return {
        "capacity": assessment.to_dict(),
        "summary": model.summarize(velocity, assessment).to_dict()
    }


@app.post("/api/score")
async def score_items(request: ScoreRequest):
    """Rank items for sprint inclusion."""
    scored = ItemScorer().score(
        [i.to_item() for i in request.items],
        request.carry_over,
        _commitments(request.commitments)
    )
    return {"items": [i.to_dict() for i in scored]}


@app.post("/api/plan")
async def create_plan(request: PlanRequest):
    """Generate a sprint plan from posted inputs."""
    return _plan(request).to_dict()


@app.post("/api/plan/report")
async def create_plan_report(request: PlanRequest):
    """Generate a markdown sprint plan report from posted inputs."""
    result = _plan(request)
    return {"report": reporter.plan_report(result.plan, result.velocity, result.capacity)}


@app.get("/api/plan/live")
async def get_live_plan():
    """Fetch current data from Jira and Confluence and plan the next sprint."""
    if not config.jira_configured:
        raise HTTPException(status_code=400, detail="Jira not configured")

    try:
        workflow = SprintPlanningWorkflow(config)
        result = await workflow.run()
    except Exception as e:
        logger.error("Live planning failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    data = result.to_dict()
    data["report"] = reporter.plan_report(result.plan, result.velocity, result.capacity)
    return data


# Run with: uvicorn sprint_planner.api:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
