# backend/wsgi.py
from migdalor import create_app
from migdalor.tasks import start_scheduler

app = create_app()

if app.config["SCHEDULER_ENABLED"]:
    start_scheduler(app)
