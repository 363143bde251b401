"""Strict two-phase lock manager with waits-for-graph deadlock detection."""

from __future__ import annotations

import enum
import itertools
import threading
from dataclasses import dataclass, field


class LockMode(enum.Enum):
    """The state in which a data item is locked."""

    UNLOCKED = "unlocked"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


class DeadLockError(Exception):
    """Raised when waiting for a lock would cause a deadlock."""

    def __init__(self, message: str = "deadlock detected") -> None:
        super().__init__(message)


class _SharedMutex:
    """A reader-writer mutex without ownership tracking."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    def try_acquire(self, shared: bool) -> bool:
        with self._cond:
            if self._writer or (not shared and self._readers):
                return False
            if shared:
                self._readers += 1
            else:
                self._writer = True
            return True

    def acquire(self, shared: bool) -> None:
        with self._cond:
            if shared:
                self._cond.wait_for(lambda: not self._writer)
                self._readers += 1
            else:
                self._cond.wait_for(lambda: not self._writer and self._readers == 0)
                self._writer = True

    def release(self, shared: bool) -> None:
        with self._cond:
            if shared:
                self._readers -= 1
            else:
                self._writer = False
            self._cond.notify_all()


class Lock:
    """A lock on one data item, shared between the transactions using it."""

    _ids = itertools.count(1)
    _ids_latch = threading.Lock()

    def __init__(self, data_item: int) -> None:
        with Lock._ids_latch:
            self.lock_id = next(Lock._ids)
        self.data_item = data_item
        self.owners: list[Transaction] = []
        self.waiters: list[Transaction] = []
        self.ownership = LockMode.UNLOCKED
        self.metadata_latch = threading.Lock()
        self._mutex = _SharedMutex()
        self._refs = 0
        self._dead = False
        self._ref_latch = threading.Lock()

    def is_expired(self) -> bool:
        """True when no transaction holds or is acquiring this lock."""
        with self._ref_latch:
            return self._refs == 0

    def _retain(self) -> bool:
        with self._ref_latch:
            if self._dead:
                return False
            self._refs += 1
            return True

    def _release_ref(self) -> None:
        with self._ref_latch:
            self._refs -= 1
            if self._refs == 0:
                self._dead = True

    def __repr__(self) -> str:
        return f"Lock(id={self.lock_id}, item={self.data_item}, mode={self.ownership.name})"


class Transaction:
    """A transaction holding locks until it is released (strict 2PL)."""

    _ids = itertools.count(1)
    _ids_latch = threading.Lock()

    def __init__(self, lock_manager: LockManager | None = None) -> None:
        with Transaction._ids_latch:
            self.txn_id = next(Transaction._ids)
        self.lock_manager = lock_manager
        self._held: list[tuple[Lock, LockMode]] = []
        self._released = False

    @property
    def locks(self) -> tuple[Lock, ...]:
        """The locks acquired so far."""
        return tuple(lock for lock, _ in self._held)

    def add_lock(self, data_item: int, mode: LockMode) -> Lock:
        """Acquire a lock on the data item in the given mode."""
        if self.lock_manager is None:
            raise RuntimeError("transaction has no lock manager")
        if self._released:
            raise RuntimeError("transaction already released its locks")
        return self.lock_manager.acquire_lock(self, data_item, mode)

    def release(self) -> None:
        """End the transaction and release every lock it holds."""
        if self._released:
            return
        self._released = True
        if self.lock_manager is not None:
            self.lock_manager.waits_for_graph.remove_transaction(self)
        held, self._held = self._held, []
        for lock, mode in held:
            with lock.metadata_latch:
                lock.owners[:] = [owner for owner in lock.owners if owner is not self]
            lock._mutex.release(mode is LockMode.SHARED)
        for lock, _ in held:
            lock._release_ref()

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"Transaction(id={self.txn_id})"


class WaitsForGraph:
    """Tracks which transactions wait for which, detecting cycles."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._graph: dict[Transaction, list[Transaction]] = {}

    def _has_cycle_from(self, node: Transaction, path: set[Transaction] | None = None) -> bool:
        path = set() if path is None else path
        if node in path:
            return True
        path.add(node)
        try:
            return any(
                self._has_cycle_from(other, path)
                for other in self._graph.get(node, ())
                if other in self._graph
            )
        finally:
            path.discard(node)

    def add_waits_for(self, transaction: Transaction, lock: Lock) -> None:
        """Record that the transaction waits for the owners of the lock.

        Raises DeadLockError, dropping the transaction's waits, if this closes a cycle.
        """
        with self._mutex:
            waits_for = self._graph.setdefault(transaction, [])
            for other in lock.owners:
                if other not in waits_for:
                    waits_for.append(other)
            for other in lock.owners:
                if other in self._graph and self._has_cycle_from(other):
                    del self._graph[transaction]
                    raise DeadLockError()

    def add_waiters(self, owner: Transaction, waiters) -> None:
        """Record that every waiter now waits for the owner."""
        with self._mutex:
            for waiter in waiters:
                already = self._graph.setdefault(waiter, [])
                if owner not in already:
                    already.append(owner)
            if owner in self._graph and self._has_cycle_from(owner):
                raise DeadLockError()

    def remove_transaction(self, transaction: Transaction) -> None:
        """Remove all edges to and from the transaction."""
        with self._mutex:
            self._graph.pop(transaction, None)
            for waits_for in self._graph.values():
                waits_for[:] = [other for other in waits_for if other is not transaction]


@dataclass
class _Bucket:
    latch: threading.Lock = field(default_factory=threading.Lock)
    locks: list[Lock] = field(default_factory=list)


class LockManager:
    """Hands out locks on data items from a fixed-size hash table."""

    def __init__(self, bucket_count: int) -> None:
        if bucket_count <= 0:
            raise ValueError("bucket_count must be positive")
        self._table = [_Bucket() for _ in range(bucket_count)]
        self.waits_for_graph = WaitsForGraph()

    def _bucket(self, data_item: int) -> _Bucket:
        return self._table[data_item % len(self._table)]

    def _lookup(self, data_item: int) -> Lock:
        bucket = self._bucket(data_item)
        with bucket.latch:
            bucket.locks[:] = [lock for lock in bucket.locks if not lock.is_expired()]
            for lock in bucket.locks:
                if lock.data_item == data_item and lock._retain():
                    return lock
            lock = Lock(data_item)
            lock._retain()
            bucket.locks.insert(0, lock)
            return lock

    def _grant(self, transaction: Transaction, lock: Lock, mode: LockMode) -> None:
        lock.ownership = mode
        lock.owners.append(transaction)
        transaction._held.append((lock, mode))
        self.waits_for_graph.add_waiters(transaction, lock.waiters)

    def acquire_lock(self, transaction: Transaction, data_item: int, mode: LockMode) -> Lock:
        """Lock the data item for the transaction, blocking while incompatible.

        Raises DeadLockError if waiting would deadlock.
        """
        if mode is LockMode.UNLOCKED:
            raise ValueError("cannot acquire a lock in mode UNLOCKED")
        shared = mode is LockMode.SHARED
        lock = self._lookup(data_item)

        with lock.metadata_latch:
            if lock._mutex.try_acquire(shared):
                self._grant(transaction, lock, mode)
                return lock
            try:
                self.waits_for_graph.add_waits_for(transaction, lock)
            except DeadLockError:
                lock._release_ref()
                raise
            lock.waiters.append(transaction)

        lock._mutex.acquire(shared)

        with lock.metadata_latch:
            lock.waiters.remove(transaction)
            self._grant(transaction, lock, mode)
        return lock

    def get_lock_mode(self, data_item: int) -> LockMode:
        """The mode in which the data item is currently locked."""
        bucket = self._bucket(data_item)
        with bucket.latch:
            lock = next((lock for lock in bucket.locks if lock.data_item == data_item), None)
            if lock is None or lock.is_expired():
                return LockMode.UNLOCKED
            return lock.ownership