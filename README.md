# dbkernel

This package provides small, self-contained building blocks of a database engine:

- **`dbkernel.lock_manager`** is a lock manager for strict two-phase locking
  with shared and exclusive locks on integer data items. A transaction holds
  its locks until it is released. A waits-for graph detects deadlocks. When a
  request would close a cycle, the manager raises `DeadLockError`.
- **`dbkernel.register`** provides `Register`. A register is the mutable cell
  that carries one attribute of a tuple between operators, and it holds either
  a signed 64-bit integer or a string.
- **`dbkernel.operators`** holds the relational operators, which follow the
  iterator (open / next / close) model:
  `Print`, `Projection`, `Select`, `Sort`, `HashJoin` and `HashAggregation`.
  It also defines the `Operator`, `UnaryOperator` and `BinaryOperator` base classes.
- **`dbkernel.set_operators`** holds the set and bag operators:
  `Union`, `UnionAll`, `Intersect`, `IntersectAll`, `Except` and `ExceptAll`.

The package has no runtime dependencies and needs Python 3.10 or later.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Locking

```python
from dbkernel.lock_manager import LockManager, LockMode, Transaction

manager = LockManager(1024)          # number of hash buckets, must be positive

with Transaction(manager) as txn:
    txn.add_lock(42, LockMode.EXCLUSIVE)
    assert manager.get_lock_mode(42) is LockMode.EXCLUSIVE
    assert len(txn.locks) == 1

# Leaving the block releases every lock the transaction held.
assert manager.get_lock_mode(42) is LockMode.UNLOCKED
```

- Several transactions can hold a `SHARED` lock on the same item at the same
  time. An `EXCLUSIVE` lock can have only one holder.
- `add_lock` blocks while the requested mode conflicts with the current holders.
  If waiting would deadlock, it raises `DeadLockError` instead. The caller
  should then abort that transaction by calling `release()` or by leaving its
  `with` block.
- `release()` can be called more than once. Calling `add_lock` after release
  raises `RuntimeError`. Calling `add_lock` on a `Transaction` created without
  a manager also raises `RuntimeError`. Requesting `LockMode.UNLOCKED` raises
  `ValueError`.
- `WaitsForGraph` can also be used directly. Its methods are
  `add_waits_for(transaction, lock)`, `add_waiters(owner, waiters)` and
  `remove_transaction(transaction)`.

## Registers

```python
from dbkernel.register import Register, RegisterType

a = Register.from_int(12345)
b = Register.from_string("this is a string")
assert a.type is RegisterType.INT64 and a.as_int() == 12345
assert b.type is RegisterType.CHAR16 and b.as_string() == "this is a string"
assert a != b
```

Two registers are equal when they hold the same type and the same value. They
are hashable, and `get_hash()` returns an unsigned 64-bit hash. Ordering two
registers of different types raises `TypeError`, and so does reading a value as
the wrong type. Integers outside the signed 64-bit range raise `OverflowError`.
`assign(other)` overwrites a register in place.

## Query operators

Every operator has the methods `open()`, `next()`, `close()` and `get_output()`.
After `next()` returns `True`, the registers from `get_output()` hold the
current tuple. The package has no table scan, so a plan starts from an
`Operator` that you write yourself:

```python
import io

from dbkernel.operators import (
    Criterion, Operator, PredicateAttributeInt64, PredicateType, Print, Select, Sort,
)
from dbkernel.register import Register


class Rows(Operator):
    def __init__(self, arity, rows):
        self._regs = [Register() for _ in range(arity)]
        self._rows = rows

    def open(self):
        self._it = iter(self._rows)

    def next(self):
        row = next(self._it, None)
        if row is None:
            return False
        for reg, value in zip(self._regs, row):
            reg.assign(Register(value))
        return True

    def close(self):
        pass

    def get_output(self):
        return self._regs


students = Rows(2, [(24002, "Xenokrates"), (26120, "Fichte"), (29555, "Feuerbach")])
out = io.StringIO()
plan = Print(
    Sort(Select(students, PredicateAttributeInt64(0, 25000, PredicateType.GT)),
         [Criterion(0, desc=True)]),
    out,
)
plan.open()
while plan.next():
    pass
plan.close()
assert out.getvalue() == "29555,Feuerbach\n26120,Fichte\n"
```

- `Print(input, stream=None)` writes one line per tuple, with the attributes
  separated by commas. Without a stream it writes to standard output.
- `Projection(input, attr_indexes)` keeps the attributes at the given indexes.
- `Select(input, predicate)` takes one of three predicates. Use
  `PredicateAttributeInt64` to compare an attribute with an integer constant,
  `PredicateAttributeChar16` to compare it with a string constant, and
  `PredicateAttributeAttribute` to compare two attributes. The comparison is
  any `PredicateType` (`EQ`, `NE`, `LT`, `LE`, `GT`, `GE`).
- `Sort(input, criteria)` sorts stably. The first `Criterion` is the most
  significant one.
- `HashJoin(left, right, attr_index_left, attr_index_right)` computes an inner
  equi-join. Each output tuple holds the left attributes followed by the right ones.
- `HashAggregation(input, group_by_attrs, aggr_funcs)` outputs the group-by
  attributes followed by one value per `AggrFunc`. The aggregate kinds are
  `AggrFuncKind.MIN`, `MAX`, `SUM` and `COUNT`, and `SUM` needs an integer attribute.
- `Union`, `Intersect` and `Except` use set semantics. `UnionAll`,
  `IntersectAll` and `ExceptAll` use bag semantics. Both inputs must have the
  same number of attributes.

## What it does not do

The package keeps nothing on disk and has no pages, tables or buffer manager.
It has no SQL parser or query planner, and it provides no server or command-line
program. Locks live only in memory, inside a single process.