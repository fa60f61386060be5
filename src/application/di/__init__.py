from .container import Container, get_container, close_container

__all__ = ["Container", "get_container", "close_container"]
