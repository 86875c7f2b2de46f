from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from queue import Queue
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, HttpUrl

from . import __version__
from .scanner import analyze_page, run_scan


class TechnologyPayload(BaseModel):
    name: str
    version: Optional[str] = None


class AnalyzeRequest(BaseModel):
    html: str = Field(default="", description="Raw HTML of the page.")
    headers: Dict[str, Union[str, List[str]]] = Field(
        default_factory=dict, description="Response headers as returned by the server."
    )
    url: str = Field(default="", description="Final URL the page was served from.")
    technologies: Optional[List[Union[str, TechnologyPayload]]] = Field(
        default=None,
        description="Known technologies; detected from the HTML when omitted.",
    )


class ScanRequest(BaseModel):
    url: HttpUrl
    include_subdomains: bool = Field(
        default=False,
        description="Also analyze subdomains linked from the page (at most 5).",
    )


app = FastAPI(
    title="Scrapii Security Analysis API",
    description="Passive security analysis of a single web page.",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.get("/healthz", tags=["meta"])
def healthcheck():
    return {"status": "ok"}


@app.post("/api/analyze", tags=["analyze"])
def analyze(payload: AnalyzeRequest):
    technologies: Optional[List[Any]] = None
    if payload.technologies is not None:
        technologies = [
            item if isinstance(item, str) else item.model_dump() for item in payload.technologies
        ]
    analysis = analyze_page(payload.html, payload.headers, payload.url, technologies=technologies)
    return analysis.to_dict()


@app.post("/api/scan", tags=["scan"])
def scan(payload: ScanRequest):
    try:
        report = run_scan(str(payload.url), include_subdomains=payload.include_subdomains)
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return report


@app.get("/api/scan/stream", tags=["scan"])
def scan_stream(
    url: HttpUrl,
    include_subdomains: bool = Query(
        default=False,
        description="Also analyze subdomains linked from the page.",
    ),
):
    event_queue: "Queue[Optional[dict]]" = Queue()

    def progress(event: dict) -> None:
        event_queue.put({**event, "timestamp": _now()})

    def worker() -> None:
        try:
            report = run_scan(
                str(url), progress_callback=progress, include_subdomains=include_subdomains
            )
            event_queue.put({"type": "report", "report": report, "progress": 100, "timestamp": _now()})
        except Exception as exc:
            event_queue.put({"type": "error", "message": str(exc), "timestamp": _now()})
        finally:
            event_queue.put(None)

    threading.Thread(target=worker, daemon=True).start()

    def event_stream():
        while True:
            item = event_queue.get()
            if item is None:
                break
            yield f"data: {json.dumps(item, ensure_ascii=False)}\n\n"

    return StreamingResponse(event_stream(), media_type="text/event-stream")
