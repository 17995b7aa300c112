from .dispatcher import PostDispatcher, aggregate_status

__all__ = ['PostDispatcher', 'aggregate_status']
