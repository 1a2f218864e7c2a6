from functools import lru_cache
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse

import formatters
import protection
import state as store
from collectors.proxy import ProxyError
from config import Config, load_config, with_live_rate
from models import ProtectionStatus, UsageState

app = FastAPI(title="Claude Usage Monitor")


@lru_cache
def get_config() -> Config:
    return with_live_rate(load_config())


@app.get("/api/state", response_model=UsageState, response_model_by_alias=True)
async def current_state(config: Config = Depends(get_config)):
    return store.load_state(config.state_file)


@app.get("/api/refresh", response_model=UsageState, response_model_by_alias=True)
def refresh(config: Config = Depends(get_config)):
    try:
        return store.refresh(config)
    except ProxyError as exc:
        raise HTTPException(502, str(exc))


@app.get("/api/protection", response_model=ProtectionStatus)
async def protection_status(config: Config = Depends(get_config)):
    return protection.get_protection_status(config, store.load_state(config.state_file))


@app.post("/api/protection/{action}", response_model=ProtectionStatus)
async def toggle_protection(action: str, config: Config = Depends(get_config)):
    if action == "enable":
        new_state = protection.enable_protection(config.state_file)
    elif action == "disable":
        new_state = protection.disable_protection(config.state_file)
    else:
        raise HTTPException(404, f"Unknown action: {action}")
    return protection.get_protection_status(config, new_state)


@app.get("/api/report", response_class=PlainTextResponse)
async def report(
    format: Literal["text", "json", "html"] = "text",
    config: Config = Depends(get_config),
):
    body = formatters.format_report(store.load_state(config.state_file), config, format)
    if format == "html":
        return HTMLResponse(body)
    if format == "json":
        return PlainTextResponse(body, media_type="application/json")
    return body


@app.get("/", response_class=HTMLResponse)
async def index(config: Config = Depends(get_config)):
    return formatters.format_report(store.load_state(config.state_file), config, "html")
