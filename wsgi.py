# wsgi.py (at repo root)
import logging

from trainer_directory import create_app

app = create_app()
logging.basicConfig(level=app.config["LOG_LEVEL"])
