from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from api.websocket import websocket_endpoint
from api.sessions import router as sessions_router
from collab import initialize_collab_manager
from collab import manager as collab_module  # Access collab_manager at runtime
import logging
import uvicorn
from config import HOST, PORT, CORS_ORIGINS, WELCOME_CONTENT, EVICT_EMPTY_SESSIONS, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Create FastAPI app
app = FastAPI(
    title="Collaborative Markdown Backend",
    description="Real-time session synchronization for shared markdown editing",
    version="1.0.0"
)

# Add CORS middleware for frontend connections
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include sessions API routes
app.include_router(sessions_router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize the collaboration manager with an empty session store"""
    initialize_collab_manager(
        welcome_content=WELCOME_CONTENT,
        evict_empty_sessions=EVICT_EMPTY_SESSIONS
    )
    print("🤝 Collaboration manager initialized")
    if EVICT_EMPTY_SESSIONS:
        print("🧹 Empty sessions will be evicted")


@app.on_event("shutdown")
async def shutdown_event():
    """Report what is lost on shutdown (sessions are memory-only)"""
    if collab_module.collab_manager:
        stats = collab_module.collab_manager.stats()
        print(f"👋 Shutting down with {stats['sessions']} sessions, {stats['connections']} connections")


# WebSocket endpoint for collaborative editing
@app.websocket("/ws/collab")
async def collab_websocket_handler(websocket: WebSocket):
    """WebSocket endpoint for collaborative editing.

    Clients join a session with a join-session message and then stream
    content-change / cursor-move messages.
    """
    await websocket_endpoint(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    stats = collab_module.collab_manager.stats() if collab_module.collab_manager else {}
    return {
        "status": "healthy",
        "service": "collab-markdown-backend",
        "sessions": stats.get("sessions", 0),
        "connections": stats.get("connections", 0)
    }


# Root endpoint with API info
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Collaborative Markdown Backend API",
        "version": "1.0.0",
        "websocket_endpoint": "/ws/collab",
        "api_endpoints": {
            "create_session": "POST /api/sessions",
            "list_sessions": "/api/sessions",
            "session_snapshot": "/api/sessions/{session_id}",
            "health": "/health"
        },
        "documentation": "/docs"
    }

if __name__ == "__main__":
    # Run the server
    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level=LOG_LEVEL
    )
