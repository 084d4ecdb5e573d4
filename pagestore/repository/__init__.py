from pagestore.repository.nodes import NodeRepository

__all__ = ["NodeRepository"]
