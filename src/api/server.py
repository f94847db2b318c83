"""FastAPI transport for the allocation request/response boundary."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Literal

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.allocation.bootstrap import AllocatorRuntime
from src.allocation.errors import DuplicateIdError, NoTaskAvailable
from src.allocation.tasks import (
    ChargingTask,
    CompoundTask,
    DoorCheckTask,
    RobotRequest,
    SimpleTask,
    Task,
    TaskAssignment,
    TaskOutcome,
    TaskStop,
)
from src.environment.probability import DoorStatus
from src.fleet.geometry import Pose

logger = logging.getLogger(__name__)


class PoseModel(BaseModel):
    x: float
    y: float
    yaw: float = 0.0

    def to_pose(self) -> Pose:
        return Pose(self.x, self.y, self.yaw)

    @classmethod
    def from_pose(cls, pose: Pose) -> PoseModel:
        return cls(x=pose.x, y=pose.y, yaw=pose.yaw)


class LastTaskModel(BaseModel):
    completed: bool = False
    door_status: Literal["open", "closed", "unknown"] = "unknown"
    room_id: str | None = None
    timestamp: float | None = None


class TaskRequestModel(BaseModel):
    """Body of a robot's "give me the best next task" request."""

    robot_id: str | None = None
    pose: PoseModel
    battery_level: float = Field(ge=0.0, le=100.0)
    last_task: LastTaskModel = Field(default_factory=LastTaskModel)


class AssignmentModel(BaseModel):
    task_id: str
    kind: str
    goal: PoseModel
    room_id: str
    cost: float
    waypoints: list[PoseModel] = []
    completed: bool = False


class StopModel(BaseModel):
    room_id: str
    pose: PoseModel
    deadline: float


class NewTaskModel(BaseModel):
    """A task submitted by an operator or upstream planner."""

    task_id: str
    kind: Literal["simple", "compound", "charging", "door"]
    room_id: str | None = None
    station_id: str | None = None
    door_id: str | None = None
    pose: PoseModel | None = None
    deadline: float | None = None
    priority: int = 1
    remaining_time: float = 0.0
    stops: list[StopModel] = []


def _to_task(body: NewTaskModel) -> Task:
    """Build a task variant from a submission; raises ValueError on missing fields."""
    if body.kind == "compound":
        stops = tuple(TaskStop(s.room_id, s.pose.to_pose(), s.deadline) for s in body.stops)
        return CompoundTask(task_id=body.task_id, stops=stops, priority=body.priority)

    if body.pose is None:
        raise ValueError(f"{body.kind} task needs a pose")
    pose = body.pose.to_pose()
    if body.kind == "simple":
        if body.room_id is None or body.deadline is None:
            raise ValueError("simple task needs room_id and deadline")
        return SimpleTask(body.task_id, body.room_id, pose, body.deadline, body.priority)
    if body.kind == "charging":
        if body.station_id is None:
            raise ValueError("charging task needs station_id")
        return ChargingTask(body.task_id, body.station_id, pose, body.remaining_time)
    if body.door_id is None or body.room_id is None:
        raise ValueError("door task needs door_id and room_id")
    return DoorCheckTask(body.task_id, body.door_id, body.room_id, pose)


def _to_request(body: TaskRequestModel) -> RobotRequest:
    last = body.last_task
    return RobotRequest(
        pose=body.pose.to_pose(),
        battery_level=body.battery_level,
        last_task=TaskOutcome(
            completed=last.completed,
            door_status=DoorStatus(last.door_status),
            room_id=last.room_id,
            timestamp=last.timestamp,
        ),
        robot_id=body.robot_id,
    )


def _to_model(assignment: TaskAssignment) -> AssignmentModel:
    return AssignmentModel(
        task_id=assignment.task_id,
        kind=assignment.kind,
        goal=PoseModel.from_pose(assignment.goal),
        room_id=assignment.room_id,
        cost=assignment.cost,
        waypoints=[PoseModel.from_pose(p) for p in assignment.waypoints],
        completed=assignment.completed,
    )


def create_app(runtime: AllocatorRuntime) -> FastAPI:
    """Build the HTTP app around an already-constructed allocator."""

    app = FastAPI(title="Fleet Task Allocator API", version="0.1.0")
    app.state.runtime = runtime

    @app.get("/api/health")
    def health() -> dict:
        """Basic readiness endpoint."""

        return {"status": "ok", "pool_size": len(runtime.pool)}

    @app.post("/api/tasks/request", response_model=AssignmentModel)
    def request_task(body: TaskRequestModel):
        """Score the pool for this robot and hand out the best task."""

        try:
            assignment = runtime.service.handle_request(_to_request(body))
        except NoTaskAvailable as exc:
            return JSONResponse(status_code=404, content={"available": False, "reason": str(exc)})
        return _to_model(assignment)

    @app.post("/api/tasks", status_code=201)
    def insert_task(body: NewTaskModel) -> dict:
        """Add a task to the pool."""

        try:
            task = _to_task(body)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        try:
            runtime.pool.insert(task)
        except DuplicateIdError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"task_id": task.task_id, "pool_size": len(runtime.pool)}

    @app.get("/api/pool")
    def pool_summary() -> dict:
        """Diagnostics: pool size, variants, and service counters."""

        return {
            "size": len(runtime.pool),
            "by_kind": runtime.pool.counts_by_kind(),
            "stats": asdict(runtime.service.stats_snapshot()),
        }

    return app
