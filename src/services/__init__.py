"""Business logic services used by handlers.

Handlers reach services through `services.wiring.get_app()`, which builds
them lazily on first use so importing a handler never touches AWS.
"""

# Do NOT import services here - use lazy loading in handlers instead
