# bus_tracker/api/config.py
"""Configuration management for the bus tracker API."""
import os
from dotenv import load_dotenv

load_dotenv()


def get_openai_api_key():
    """Get OpenAI API key from environment."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY not set")
    return api_key


def get_chat_model():
    """Get the chat model used for route lookup, announcements and chat."""
    return os.getenv("OPENAI_CHAT_MODEL", "gpt-4.1")


def get_city():
    """Get the city the assistant and route lookup are focused on."""
    return os.getenv("BUS_TRACKER_CITY", "Estelí, Nicaragua")


def get_port():
    """Get port configuration."""
    return int(os.getenv("PORT", 5000))


def get_simulation_config():
    """Get position simulator configuration.

    Speeds are fractions of a path segment advanced per tick, not metres.
    """
    return {
        "tick_interval": float(os.getenv("SIM_TICK_INTERVAL_S", "0.1")),
        "speed_min": float(os.getenv("SIM_SPEED_MIN", "0.00005")),
        "speed_span": float(os.getenv("SIM_SPEED_SPAN", "0.0001")),
        # Reported on every fix, ~36 km/h
        "reported_speed_mps": float(os.getenv("SIM_REPORTED_SPEED_MPS", "10.0")),
    }


def get_progress_config():
    """Get route progress configuration."""
    return {
        "stop_radius_m": float(os.getenv("STOP_RADIUS_M", "50")),
    }


def get_websocket_config():
    """Get WebSocket configuration."""
    return {
        "ping_interval": int(os.getenv("WEBSOCKET_PING_INTERVAL", "25")),
        "ping_timeout": int(os.getenv("WEBSOCKET_PING_TIMEOUT", "60")),
        "cors_allowed_origins": os.getenv("WEBSOCKET_CORS_ORIGINS", "*").split(",")
    }


def validate_simulation_config():
    """Validate simulator configuration is usable."""
    cfg = get_simulation_config()

    if cfg["tick_interval"] <= 0:
        raise ValueError("SIM_TICK_INTERVAL_S must be positive")

    if cfg["speed_min"] <= 0 or cfg["speed_span"] < 0:
        raise ValueError("SIM_SPEED_MIN must be positive and SIM_SPEED_SPAN non-negative")

    return True
