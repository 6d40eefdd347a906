#!/usr/bin/env python3
"""
Main entry point for the recruiting match service.

- JSON API for job postings, resume processing and match generation
- Background worker that matches newly uploaded candidates against active jobs
"""

from app import create_app
from scheduler import start_background_services

app = create_app()

if __name__ == '__main__':
    if app.config["START_MATCH_WORKER"]:
        start_background_services(app)

    app.run(host='0.0.0.0', port=5000, debug=False)
