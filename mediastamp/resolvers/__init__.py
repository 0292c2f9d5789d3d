from mediastamp.resolvers.factory import ResolverFactory, container_kind

__all__ = ["ResolverFactory", "container_kind"]
