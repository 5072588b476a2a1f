from fastapi import FastAPI

from quandlfeed.api.routes import router
from quandlfeed.config.settings import settings
from quandlfeed.logging_config import setup_logging

setup_logging(settings.log_level)

app = FastAPI(title="quandlfeed")
app.include_router(router)
