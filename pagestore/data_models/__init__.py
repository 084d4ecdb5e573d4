from pagestore.data_models.node import Breadcrumb, Node, normalize_parent_id

__all__ = ["Breadcrumb", "Node", "normalize_parent_id"]
