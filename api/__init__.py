"""HTTP API: FastAPI app, routers and dependency providers."""
