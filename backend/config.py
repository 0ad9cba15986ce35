"""Application configuration via environment variables."""

import os
from dotenv import load_dotenv

load_dotenv()

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS (the overlay page is loaded as a browser source, dashboard from Vite)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")

# Overlay layout engine overrides
OVERLAY_DEFAULT_RESOLUTION = os.getenv("OVERLAY_DEFAULT_RESOLUTION", "1080p")
OVERLAY_MAX_OVERLAP_RATIO = float(os.getenv("OVERLAY_MAX_OVERLAP_RATIO", "0.05"))
OVERLAY_SAFE_ZONE_PADDING = float(os.getenv("OVERLAY_SAFE_ZONE_PADDING", "32"))
OVERLAY_DENSITY_COLS = int(os.getenv("OVERLAY_DENSITY_COLS", "4"))
OVERLAY_DENSITY_ROWS = int(os.getenv("OVERLAY_DENSITY_ROWS", "3"))
