from abc import ABC, abstractmethod


class BaseSource(ABC):
    @abstractmethod
    def load(self) -> list:
        """Load the products to reconcile, in processing order."""
