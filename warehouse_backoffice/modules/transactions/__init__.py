from .controller import TransactionsController

__all__ = ["TransactionsController"]
