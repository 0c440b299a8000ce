"""HTTP layer: FastAPI app factory, dependencies and routers."""
