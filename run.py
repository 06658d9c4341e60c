#!/usr/bin/env python3
"""
Run script for the AutoBrief.AI backend
"""
import uvicorn

from autobrief.config.settings import settings
from autobrief.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
