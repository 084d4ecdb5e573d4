from pagestore.navigation.tree import TreeNavigator

__all__ = ["TreeNavigator"]
