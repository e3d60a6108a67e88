"""
Adapters — concrete collaborators for storefront.ports.

    memory      in-process implementations (tests, demos)
    sqlalchemy  async SQLAlchemy stores for orders, profiles, roles
    openroute   aiohttp geocoder for OpenRouteService

Import the submodule you need; the sqlalchemy and aiohttp stacks are not
loaded until then.
"""
