# handscript/security.py
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# The browser only needs POST /analyze plus GET for /health, /prompts/active and the page
ALLOWED_METHODS = ["GET", "POST"]


def add_cors(app: FastAPI) -> None:
    """
    Let a browser page on another origin call the upload endpoint.
    CORS_ALLOWED_ORIGINS is "*" (any origin, cookies never sent) or a
    comma-separated list of origins, which may send credentials.
    """
    origins_env = os.getenv("CORS_ALLOWED_ORIGINS", "*").strip()
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    wildcard = origins_env == "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if wildcard else origins,
        allow_credentials=not wildcard,
        allow_methods=ALLOWED_METHODS,
        allow_headers=["*"],
    )
