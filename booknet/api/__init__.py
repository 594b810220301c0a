"""HTTP layer: app factory, routers and error mapping."""
