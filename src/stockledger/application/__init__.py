from .container import AppContainer, build_container

__all__ = ["AppContainer", "build_container"]
