from .calculator import Calculator, evaluate

__all__ = ["Calculator", "evaluate"]
