"""HTTP application: FastAPI app factory, routes and dependency wiring."""
