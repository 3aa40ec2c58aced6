"""HTTP API layer: routers, middleware, and error handling."""
