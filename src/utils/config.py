"""
Project configuration.

Values come from ``config.yaml`` at the project root, overridden by
environment variables (``.env`` is loaded first).  Each accessor re-reads the
environment so tests can ``monkeypatch.setenv`` without reloading modules.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from src.utils.logging import get_logger

load_dotenv()

logger = get_logger(__name__)

_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config.yaml"

_config: Optional[Dict[str, Any]] = None


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Parse config.yaml once and cache it; missing file means empty config."""
    global _config
    if _config is not None and path is None:
        return _config
    cfg_path = Path(path or _CONFIG_PATH)
    data: Dict[str, Any] = {}
    if cfg_path.exists():
        with open(cfg_path, "r") as f:
            data = yaml.safe_load(f) or {}
    if path is None:
        _config = data
    return data


def get_section(name: str) -> Dict[str, Any]:
    return load_config().get(name) or {}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %d", name, raw, default)
        return default


# ── openai ─────────────────────────────────────────────────────────────────────

def chat_model() -> str:
    return os.getenv("CHAT_MODEL") or get_section("openai").get("model", "gpt-4o-mini")


def chat_temperature() -> float:
    return float(get_section("openai").get("temperature", 0.4))


# ── speech ─────────────────────────────────────────────────────────────────────

def stt_model() -> str:
    return os.getenv("STT_MODEL") or get_section("speech").get("stt_model", "whisper-1")


def clean_transcript_enabled() -> bool:
    return _env_flag("CLEAN_TRANSCRIPT", bool(get_section("speech").get("clean_transcript", False)))


def tts_model() -> str:
    return os.getenv("TTS_MODEL") or get_section("speech").get("tts_model", "gpt-4o-mini-tts")


def tts_voice() -> str:
    return os.getenv("TTS_VOICE") or get_section("speech").get("tts_voice", "alloy")


def tts_format() -> str:
    return get_section("speech").get("tts_format", "mp3")


# ── history / validation ───────────────────────────────────────────────────────

def max_turns() -> int:
    return int(get_section("history").get("max_turns", 6))


def min_audio_bytes() -> int:
    default = int(get_section("validation").get("min_audio_bytes", 5000))
    return _env_int("MIN_AUDIO_BYTES", default)


# ── persistence ────────────────────────────────────────────────────────────────

def transcript_db_path() -> Optional[Path]:
    """Path of the durable transcript log, or None when persistence is off."""
    raw = os.getenv("TRANSCRIPT_DB")
    if raw:
        return Path(raw)
    section = get_section("persistence")
    if not section.get("enabled", False):
        return None
    db = Path(section.get("db_path", "data/transcripts.db"))
    if not db.is_absolute():
        db = _CONFIG_PATH.parent / db
    return db


# ── server ─────────────────────────────────────────────────────────────────────

def cors_origins() -> list:
    return list(get_section("server").get("cors_origins", []))


def static_dir() -> Optional[Path]:
    raw = get_section("server").get("static_dir")
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = _CONFIG_PATH.parent / path
    return path


def server_host() -> str:
    return get_section("server").get("host", "0.0.0.0")


def server_port() -> int:
    return _env_int("PORT", int(get_section("server").get("port", 3000)))
