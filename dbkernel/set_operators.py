"""Set and bag operators (union, intersection, difference) over two inputs."""

from __future__ import annotations

import abc
import copy
from collections import Counter
from collections.abc import Iterator, Sequence

from dbkernel.operators import BinaryOperator, Operator
from dbkernel.register import Register

Row = tuple[Register, ...]


def _snapshot(registers: Sequence[Register]) -> Row:
    return tuple(copy.copy(register) for register in registers)


class _SetOperator(BinaryOperator):
    """Common plumbing for operators combining two inputs of the same arity."""

    def __init__(self, input_left: Operator, input_right: Operator) -> None:
        super().__init__(input_left, input_right)
        self._left_regs: list[Register] = []
        self._right_regs: list[Register] = []
        self._output_regs: list[Register] = []
        self._rows: Iterator[Row] | None = None

    def open(self) -> None:
        self.input_left.open()
        self.input_right.open()
        self._left_regs = self.input_left.get_output()
        self._right_regs = self.input_right.get_output()
        self._output_regs = [Register() for _ in self._left_regs]
        self._rows = None

    def _left_rows(self) -> Iterator[Row]:
        while self.input_left.next():
            yield _snapshot(self._left_regs)

    def _right_rows(self) -> Iterator[Row]:
        while self.input_right.next():
            yield _snapshot(self._right_regs)

    @abc.abstractmethod
    def _produce(self) -> Iterator[Row]:
        """Yield the output tuples in order."""

    def next(self) -> bool:
        if self._rows is None:
            self._rows = self._produce()
        row = next(self._rows, None)
        if row is None:
            return False
        for target, value in zip(self._output_regs, row):
            target.assign(value)
        return True

    def close(self) -> None:
        self.input_left.close()
        self.input_right.close()
        self._rows = None

    def get_output(self) -> list[Register]:
        return self._output_regs


class Union(_SetOperator):
    """The union of both inputs with set semantics."""

    def _produce(self) -> Iterator[Row]:
        seen: set[Row] = set()
        for rows in (self._left_rows(), self._right_rows()):
            for row in rows:
                if row not in seen:
                    seen.add(row)
                    yield row


class UnionAll(_SetOperator):
    """The union of both inputs with bag semantics: left tuples, then right tuples."""

    def _produce(self) -> Iterator[Row]:
        yield from self._left_rows()
        yield from self._right_rows()


class _Intersection(_SetOperator):
    _bag = False

    def _produce(self) -> Iterator[Row]:
        if self._bag:
            remaining = Counter(self._left_rows())
        else:
            remaining = Counter(dict.fromkeys(self._left_rows(), 1))
        for row in self._right_rows():
            if remaining[row] > 0:
                remaining[row] -= 1
                yield row


class Intersect(_Intersection):
    """The intersection of both inputs with set semantics."""

    _bag = False


class IntersectAll(_Intersection):
    """The intersection of both inputs with bag semantics."""

    _bag = True


class _Difference(_SetOperator):
    _bag = False

    def _produce(self) -> Iterator[Row]:
        if self._bag:
            remaining = Counter(self._left_rows())
        else:
            remaining = Counter(dict.fromkeys(self._left_rows(), 1))
        for row in self._right_rows():
            if remaining[row] > 0:
                remaining[row] -= 1
        for row, count in remaining.items():
            for _ in range(count):
                yield row


class Except(_Difference):
    """The left input minus the right input with set semantics."""

    _bag = False


class ExceptAll(_Difference):
    """The left input minus the right input with bag semantics."""

    _bag = True