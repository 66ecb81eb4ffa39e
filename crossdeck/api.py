# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# CROSSDECK - FASTAPI INTERFACE
# -----------------------------------------------------------------------------
# Tenant-facing REST façade over Crossplane + OpenStack.
#
# Endpoints:
# - GET    /                                         : Liveness (plain text)
# - GET    /health                                   : Health check (JSON)
# - POST   /teams                                    : Register team (namespace)
# - GET    /teams/{team_id}                          : Raw namespace status
# - POST   /teams/{team_id}/vm                       : Create VM
# - PUT    /teams/{team_name}/vm/{vm_name}/resize    : Change flavor
# - PUT    /teams/{team_id}/vm/{resource_id}/scale   : Scale deployment
# - POST   /teams/{team_name}/vm/{vm_name}/attach-disk : Attach volume
# - POST   /teams/{team_name}/block                  : Create block volume
# - PUT    /teams/{team_name}/vm/{vm_name}/{action}  : start / stop / delete
# - DELETE /teams/{team_id}/vm/{resource_id}         : Direct delete
#
# Errors are plain-text bodies: 400, 404, 409 or 500.
# Handlers are plain `def`: each request runs start-to-finish on one
# threadpool worker while the external commands block.
# -----------------------------------------------------------------------------

from contextlib import asynccontextmanager
from typing import Annotated, Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from rich.console import Console
from rich.panel import Panel

from crossdeck import __version__
from crossdeck.config import PROJECT_ROOT, Settings
from crossdeck.core.orchestrator import ActionOrchestrator
from crossdeck.domain.models import (
    AttachDiskRequest,
    BlockVolumeResponse,
    CreateBlockRequest,
    CreateVMRequest,
    MessageResponse,
    RegisterTeamRequest,
    ResizeRequest,
    ScaleRequest,
)
from crossdeck.errors import CrossdeckError, ExecutionError

load_dotenv(PROJECT_ROOT / ".env")

console = Console()

LIVENESS_TEXT = "Crossplane OpenStack API is running."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    print_banner()
    console.print("[green]CROSSDECK ONLINE[/green]")

    yield

    console.print("[yellow]CROSSDECK SHUTTING DOWN[/yellow]")


app = FastAPI(
    title="Crossdeck",
    description="Tenant VM provisioning over Crossplane and OpenStack",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Orchestrator (lazy init)
_orchestrator: ActionOrchestrator | None = None


def get_orchestrator() -> ActionOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ActionOrchestrator(Settings.from_env())
    return _orchestrator


Orchestrator = Annotated[ActionOrchestrator, Depends(get_orchestrator)]


# =============================================================================
# ERROR TRANSLATION
# =============================================================================


@app.exception_handler(CrossdeckError)
async def crossdeck_error_handler(request: Request, exc: CrossdeckError):
    detail = exc.detail() if isinstance(exc, ExecutionError) else str(exc)
    color = "yellow" if exc.status_code < 500 else "red"
    console.print(
        f"[{color}][API] {request.method} {request.url.path} -> {exc.status_code}: "
        f"{str(exc)[:200]}[/{color}]"
    )
    return PlainTextResponse(detail, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    console.print(f"[yellow][API] {request.method} {request.url.path} -> 400: {problems}[/yellow]")
    return PlainTextResponse(f"Error decoding request: {problems}", status_code=400)


# =============================================================================
# ENDPOINTS
# =============================================================================


@app.get("/", response_class=PlainTextResponse)
def hello():
    """Liveness string."""
    return LIVENESS_TEXT


@app.get("/health")
def health_check():
    """Health check for load balancers."""
    return {"status": "online", "service": "crossdeck", "version": __version__}


@app.post("/teams", response_model=MessageResponse)
def register_team(body: RegisterTeamRequest, orchestrator: Orchestrator):
    """Register a team by applying its Namespace."""
    outcome = orchestrator.register_team(body.name)
    return MessageResponse(message=outcome.message)


@app.get("/teams/{team_id}")
def get_team(team_id: str, orchestrator: Orchestrator) -> Any:
    """Raw `kubectl get namespace -o json` for the team."""
    return orchestrator.describe_team(team_id)


@app.post("/teams/{team_id}/vm", response_model=MessageResponse)
def create_vm(team_id: str, body: CreateVMRequest, orchestrator: Orchestrator):
    outcome = orchestrator.create_vm(team_id, body.model_dump(by_alias=True))
    return MessageResponse(message=outcome.message)


@app.put("/teams/{team_name}/vm/{vm_name}/resize", response_model=MessageResponse)
def resize_vm(team_name: str, vm_name: str, body: ResizeRequest, orchestrator: Orchestrator):
    outcome = orchestrator.resize_vm(team_name, vm_name, body.flavor_id)
    return MessageResponse(message=outcome.message)


@app.put("/teams/{team_id}/vm/{resource_id}/scale", response_model=MessageResponse)
def scale_vm(team_id: str, resource_id: str, body: ScaleRequest, orchestrator: Orchestrator):
    outcome = orchestrator.scale(team_id, resource_id, body.replicas)
    return MessageResponse(message=outcome.message)


@app.post("/teams/{team_name}/vm/{vm_name}/attach-disk", response_model=MessageResponse)
def attach_disk(team_name: str, vm_name: str, body: AttachDiskRequest, orchestrator: Orchestrator):
    outcome = orchestrator.attach_disk(team_name, vm_name, body.model_dump(by_alias=True))
    return MessageResponse(message=outcome.message)


@app.post("/teams/{team_name}/block", response_model=BlockVolumeResponse)
def create_block_volume(team_name: str, body: CreateBlockRequest, orchestrator: Orchestrator):
    outcome = orchestrator.create_block_volume(team_name, body.model_dump(by_alias=True))
    return BlockVolumeResponse(message=outcome.message, kubectl_output=outcome.output)


@app.put("/teams/{team_name}/vm/{vm_name}/{action}", response_model=MessageResponse)
def vm_action(team_name: str, vm_name: str, action: str, orchestrator: Orchestrator):
    """start / stop / delete, refused with 409 while the VM is busy."""
    outcome = orchestrator.vm_action(team_name, vm_name, action)
    return MessageResponse(message=outcome.message)


@app.delete("/teams/{team_id}/vm/{resource_id}", response_model=MessageResponse)
def delete_vm(team_id: str, resource_id: str, orchestrator: Orchestrator):
    """Delete the InstanceV2 by name, without the busy check."""
    outcome = orchestrator.delete_vm(team_id, resource_id)
    return MessageResponse(message=outcome.message)


# =============================================================================
# BANNER
# =============================================================================


def print_banner() -> None:
    """Print the startup banner."""
    banner = f"""
    ╔═══════════════════════════════════════════════════╗
    ║              CROSSDECK v{__version__:<26}║
    ║  • Crossplane manifests per team namespace        ║
    ║  • Busy-state guard on start / stop / delete      ║
    ╚═══════════════════════════════════════════════════╝
    """
    console.print(Panel(banner, border_style="cyan"))


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    import uvicorn

    port = Settings.from_env().port
    console.print(f"[cyan]Server starting on port {port}...[/cyan]")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
