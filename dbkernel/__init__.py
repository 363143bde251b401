"""Deadlock-detecting lock manager, registers and iterator-model relational and set operators."""

__version__ = "0.1.0"
__all__ = ["lock_manager", "register", "operators", "set_operators"]