from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """Transaction boundary owned by use cases"""

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        """
        Persist the work done so far

        Raises:
            ConcurrencyConflictError: Another writer won a race on the same rows
        """
        pass

    @abstractmethod
    async def rollback(self):
        pass
