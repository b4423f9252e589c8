import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webgen import ratelimit
from webgen.config import ConfigCheck, Settings, check_settings, describe_failure, load_settings
from webgen.errors import ExhaustionError, SpecValidationError
from webgen.pipeline import generate_document
from webgen.providers import Provider, build_providers
from webgen.spec import BRIEF_REQUIRED, normalize_spec

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

SETTINGS: Settings = load_settings()
CONFIG_CHECK: ConfigCheck = check_settings(SETTINGS)
PROVIDERS: Dict[str, Provider] = build_providers(SETTINGS)
ratelimit.configure(SETTINGS.rate_limit_max, SETTINGS.rate_limit_window_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    problem = describe_failure(CONFIG_CHECK)
    if problem:
        log.error("startup config check failed: %s; /api/generate will answer 503", problem)
    else:
        log.info("startup config ok candidates=%s", CONFIG_CHECK.candidates)
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


def _rate_limit_headers(remaining: int, reset_ts: int, *, limited: bool = False) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(ratelimit.MAX_REQUESTS),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_ts),
    }
    if limited:
        headers["Retry-After"] = str(max(0, reset_ts - int(time.time())))
    return headers


def _rate_limit_payload(reset_ts: int) -> Dict[str, Any]:
    wait_seconds = max(0, reset_ts - int(time.time()))
    return {
        "error": "rate limit exceeded",
        "reset": reset_ts,
        "retry_after_seconds": wait_seconds,
        "message": f"Rate limit exceeded. Try again in {wait_seconds} seconds.",
    }


async def _read_capped_body(request: Request, limit: int) -> Optional[bytes]:
    """Read the request body, or return None once it passes ``limit`` bytes.

    A declared Content-Length answers early; chunked bodies are counted as
    they stream in.
    """
    declared = (request.headers.get("content-length") or "").strip()
    if declared.isdigit() and int(declared) > limit:
        return None
    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > limit:
            return None
    return bytes(buf)


def _parse_payload(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _exhausted_payload(exc: ExhaustionError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": str(exc)}
    if exc.last_error:
        body["details"] = exc.last_error
    body["tried"] = exc.tried
    return body


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status() -> Dict[str, Any]:
    return CONFIG_CHECK.model_dump()


@app.post("/api/generate")
async def generate_endpoint(request: Request):
    client_key = request.client.host if request.client else "anon"
    allowed, remaining, reset_ts = ratelimit.check_and_increment("gen", client_key)
    if not allowed:
        log.info("rate_limit denied client=%s", client_key)
        return JSONResponse(
            status_code=429,
            content=_rate_limit_payload(reset_ts),
            headers=_rate_limit_headers(remaining, reset_ts, limited=True),
        )
    headers = _rate_limit_headers(remaining, reset_ts)

    try:
        body = await _read_capped_body(request, SETTINGS.max_body_bytes)
        if body is None:
            return JSONResponse(status_code=413, content={"error": "request body too large"}, headers=headers)
        payload = _parse_payload(body)
        raw_spec = payload.get("spec") if isinstance(payload, dict) else None
        spec = normalize_spec(raw_spec)
    except SpecValidationError as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc) or BRIEF_REQUIRED}, headers=headers)
    except Exception as exc:
        log.exception("reading request failed")
        return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__}, headers=headers)

    if not CONFIG_CHECK.ok:
        return JSONResponse(
            status_code=503,
            content={"error": "Missing LLM credentials", "missing": CONFIG_CHECK.missing_keys + CONFIG_CHECK.unknown_providers},
            headers=headers,
        )

    try:
        result = await run_in_threadpool(
            generate_document,
            spec,
            SETTINGS.candidates,
            PROVIDERS,
            SETTINGS.timeout_seconds,
            SETTINGS.site_url,
        )
    except ExhaustionError as exc:
        return JSONResponse(status_code=exc.status_code, content=_exhausted_payload(exc), headers=headers)
    except Exception as exc:
        log.exception("generate failed")
        return JSONResponse(status_code=500, content={"error": str(exc)}, headers=headers)

    log.info("generate ok model=%s tried=%s", result.model, result.tried)
    return JSONResponse({"html": result.html, "downloadUrl": result.download_url}, headers=headers)
