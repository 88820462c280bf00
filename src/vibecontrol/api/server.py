"""
FastAPI server for VibeControl.

This server provides:
- POST /api/agent    - one user message through provider fallback and the tool loop
- POST /api/approve  - a human grants a pending approval, receiving a one-time token
- POST /api/execute  - run the approved command with that token
- GET  /api/health   - workspace root and configured providers

The UI that renders components and approval cards lives elsewhere.
"""

import logging
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from vibecontrol.agent import Runtime
from vibecontrol.errors import (
    ConfigurationError,
    ExecutionFailure,
    InvalidOrExpiredRequest,
    NotFound,
    PathViolation,
    PermissionDenied,
    ProviderError,
)

logger = logging.getLogger(__name__)


class HistoryItem(BaseModel):
    role: str
    content: str


class AgentRequest(BaseModel):
    message: str | None = None
    history: list[HistoryItem] | None = None


class ApproveRequest(BaseModel):
    request_id: str | None = None


class ExecuteRequest(BaseModel):
    command: str | None = None
    approval_token: str | None = None
    cwd: str | None = None


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Build the app around a runtime (default: configured from the environment)."""
    runtime = runtime or Runtime.create()

    app = FastAPI(title="VibeControl API", version="0.1.0")
    app.state.runtime = runtime

    # Enable CORS for the local UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "workspace": str(runtime.sandbox.root),
            "providers": [config.label for config in runtime.agent.provider_source()],
        }

    @app.post("/api/agent")
    async def agent(request: AgentRequest) -> dict[str, Any]:
        """Answer one user message."""
        if not request.message:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing message")

        history = [item.model_dump() for item in request.history or []]
        try:
            response = await runtime.agent.respond(request.message, history)
        except ConfigurationError as e:
            logger.error(f"Agent error: {e}")
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
        except ProviderError as e:
            logger.error(f"Agent error: {e}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
        return response.to_dict()

    @app.post("/api/approve")
    async def approve(request: ApproveRequest) -> dict[str, Any]:
        """Grant a pending approval."""
        if not request.request_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing request_id")
        try:
            return runtime.approvals.grant(request.request_id)
        except InvalidOrExpiredRequest as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/api/execute")
    async def execute(request: ExecuteRequest) -> Any:
        """Run an approved command."""
        if not request.approval_token:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing approval_token")
        if not request.command:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing command")

        try:
            output = await runtime.executor.run(request.command, request.approval_token, request.cwd)
        except (PermissionDenied, PathViolation) as e:
            logger.warning(f"Execute denied: {e}")
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"success": False, "error": str(e)},
            )
        except ExecutionFailure as e:
            logger.error(f"Execute error: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": str(e),
                    "output": e.output,
                    "stderr": e.stderr,
                    "exit_code": e.exit_code,
                },
            )
        except (NotFound, OSError) as e:
            logger.error(f"Execute error: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "error": str(e)},
            )
        return {"success": True, "output": output}

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Run the API server."""
    import uvicorn
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    run_server()
