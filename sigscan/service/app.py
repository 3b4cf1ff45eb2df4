"""FastAPI application entrypoint for sigscan service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..models import ContractSignatures, ScanResult, SignatureKind, SignatureRecord
from ..parsing.selectors import selector_for
from ..scanner import ProjectScanner


class ScanRequest(BaseModel):
    path: str
    recursive: bool = True


class RecordModel(BaseModel):
    name: str
    kind: str
    signature: str
    selector: str
    visibility: Optional[str] = None
    state_mutability: Optional[str] = None
    line: int = 0


class ContractModel(BaseModel):
    name: str
    kind: str
    path: str
    project: Optional[str] = None
    records: List[RecordModel]


class ScanResponse(BaseModel):
    project_type: str
    root: str
    partial: bool
    totals: Dict[str, int]
    contracts: List[ContractModel]
    collisions: List[Dict[str, Any]]
    diagnostics: List[Dict[str, Any]]


class SelectorRequest(BaseModel):
    signature: str
    kind: SignatureKind = SignatureKind.FUNCTION


class SelectorResponse(BaseModel):
    signature: str
    kind: str
    selector: str


class HealthResponse(BaseModel):
    status: str


def _default_scanner() -> ProjectScanner:
    return ProjectScanner()


def create_app(
    scanner_factory: Callable[[], ProjectScanner] = _default_scanner,
) -> FastAPI:
    """Create the FastAPI application exposing sigscan operations."""

    app = FastAPI(title="Sigscan Service", version="1.0.0")

    async def get_scanner() -> ProjectScanner:
        # one scanner per request
        return scanner_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan", response_model=ScanResponse)
    async def scan(
        payload: ScanRequest,
        scanner: ProjectScanner = Depends(get_scanner),
    ) -> ScanResponse:
        def _run_scan() -> ScanResult:
            if payload.recursive:
                return scanner.scan_all_sub_projects(payload.path).combined
            return scanner.scan_project(payload.path)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_scan)
        return _scan_response(result)

    @app.post("/selector", response_model=SelectorResponse)
    async def selector(payload: SelectorRequest) -> SelectorResponse:
        signature = "".join(payload.signature.split())
        return SelectorResponse(
            signature=signature,
            kind=payload.kind.value,
            selector=selector_for(payload.kind, signature),
        )

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(
        _: Any, exc: NotADirectoryError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def _record_model(record: SignatureRecord) -> RecordModel:
    return RecordModel(
        name=record.name,
        kind=record.kind.value,
        signature=record.signature,
        selector=record.selector,
        visibility=record.visibility,
        state_mutability=record.state_mutability,
        line=record.line,
    )


def _contract_model(contract: ContractSignatures) -> ContractModel:
    return ContractModel(
        name=contract.name,
        kind=contract.kind.value,
        path=contract.path,
        project=contract.project,
        records=[_record_model(record) for record in contract.records],
    )


def _scan_response(result: ScanResult) -> ScanResponse:
    return ScanResponse(
        project_type=result.project.type.value,
        root=str(result.project.root),
        partial=result.partial,
        totals={
            "contracts": result.total_contracts,
            "functions": result.total_functions,
            "external_functions": result.total_external_functions,
            "events": result.total_events,
            "errors": result.total_errors,
        },
        contracts=[_contract_model(contract) for contract in result.contracts],
        collisions=[
            {"selector": collision.selector, "kind": collision.kind.value, "signatures": list(collision.signatures)}
            for collision in result.collisions
        ],
        diagnostics=[
            {
                "kind": diagnostic.kind.value,
                "message": diagnostic.message,
                "path": diagnostic.path,
                "line": diagnostic.line,
            }
            for diagnostic in result.diagnostics
        ],
    )


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
