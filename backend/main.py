# backend/main.py
import os

from summary_desk.core.lifespan import lifespan
from summary_desk.api import documents, health, session, summaries
from summary_desk.core.errors import setup_error_handlers
from summary_desk.core.middleware import setup_middleware
from fastapi import FastAPI


app = FastAPI(
    title="Summary Desk API",
    version="1.0.0",
    description="Upload PDF reports, trigger summarization, and read the summaries",
    lifespan=lifespan
)

# Setup middleware
setup_middleware(app)
setup_error_handlers(app)

# Register API routes
app.include_router(documents.router, tags=["documents"])
app.include_router(summaries.router, tags=["summaries"])
app.include_router(session.router, tags=["session"])
app.include_router(health.router, tags=["health"])

# ---------- Run ----------

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
