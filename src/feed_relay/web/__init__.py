# ABOUTME: Web trigger for the update engine.
# ABOUTME: FastAPI application exposing health and run endpoints.
