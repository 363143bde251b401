"""Iterator-model relational operators that pass tuples through registers."""

from __future__ import annotations

import abc
import copy
import enum
import operator
import sys
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import TextIO, Union

from dbkernel.register import Register


def _materialize(registers: Sequence[Register]) -> list[Register]:
    return [copy.copy(register) for register in registers]


def _emit(targets: Sequence[Register], values: Sequence[Register]) -> None:
    for target, value in zip(targets, values):
        target.assign(value)


class Operator(abc.ABC):
    """An operator producing tuples one at a time.

    After ``open()``, each successful call to ``next()`` leaves the registers
    returned by ``get_output()`` holding the attributes of the next tuple.
    """

    @abc.abstractmethod
    def open(self) -> None:
        """Initialise the operator and its inputs."""

    @abc.abstractmethod
    def next(self) -> bool:
        """Produce the next tuple; False once the input is exhausted."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the operator's state and close its inputs."""

    @abc.abstractmethod
    def get_output(self) -> list[Register]:
        """The registers holding the attributes of the current tuple."""


class UnaryOperator(Operator):
    """An operator with a single input."""

    def __init__(self, input: Operator) -> None:
        self.input = input


class BinaryOperator(Operator):
    """An operator with two inputs."""

    def __init__(self, input_left: Operator, input_right: Operator) -> None:
        self.input_left = input_left
        self.input_right = input_right


class Print(UnaryOperator):
    """Writes each input tuple as a comma-separated line to a stream."""

    def __init__(self, input: Operator, stream: TextIO | None = None) -> None:
        super().__init__(input)
        self.stream = stream if stream is not None else sys.stdout
        self._input_regs: list[Register] = []

    def open(self) -> None:
        self.input.open()
        self._input_regs = self.input.get_output()

    def next(self) -> bool:
        if not self.input.next():
            return False
        self.stream.write(",".join(str(register) for register in self._input_regs))
        self.stream.write("\n")
        return True

    def close(self) -> None:
        self.input.close()
        self._input_regs = []

    def get_output(self) -> list[Register]:
        return []


class Projection(UnaryOperator):
    """Passes on only the attributes at the given indexes."""

    def __init__(self, input: Operator, attr_indexes: Sequence[int]) -> None:
        super().__init__(input)
        self.attr_indexes = list(attr_indexes)

    def open(self) -> None:
        self.input.open()

    def next(self) -> bool:
        return self.input.next()

    def close(self) -> None:
        self.input.close()

    def get_output(self) -> list[Register]:
        source = self.input.get_output()
        return [source[index] for index in self.attr_indexes]


class PredicateType(enum.Enum):
    """The comparison a selection applies."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    @property
    def compare(self) -> Callable[[Register, Register], bool]:
        """The binary comparison function for this predicate."""
        return _COMPARISONS[self]


_COMPARISONS: dict[PredicateType, Callable[[Register, Register], bool]] = {
    PredicateType.EQ: operator.eq,
    PredicateType.NE: operator.ne,
    PredicateType.LT: operator.lt,
    PredicateType.LE: operator.le,
    PredicateType.GT: operator.gt,
    PredicateType.GE: operator.ge,
}


@dataclass(frozen=True)
class PredicateAttributeInt64:
    """``tuple[attr_index] P constant`` with an integer constant."""

    attr_index: int
    constant: int
    predicate_type: PredicateType


@dataclass(frozen=True)
class PredicateAttributeChar16:
    """``tuple[attr_index] P constant`` with a string constant."""

    attr_index: int
    constant: str
    predicate_type: PredicateType


@dataclass(frozen=True)
class PredicateAttributeAttribute:
    """``tuple[attr_left_index] P tuple[attr_right_index]``."""

    attr_left_index: int
    attr_right_index: int
    predicate_type: PredicateType


Predicate = Union[PredicateAttributeInt64, PredicateAttributeChar16, PredicateAttributeAttribute]


class Select(UnaryOperator):
    """Passes on only the tuples satisfying a predicate."""

    def __init__(self, input: Operator, predicate: Predicate) -> None:
        super().__init__(input)
        self.predicate_type = predicate.predicate_type
        self._constant: Register | None = None
        self._right_index: int | None = None
        if isinstance(predicate, PredicateAttributeInt64):
            self.attr_index = predicate.attr_index
            self._constant = Register.from_int(predicate.constant)
        elif isinstance(predicate, PredicateAttributeChar16):
            self.attr_index = predicate.attr_index
            self._constant = Register.from_string(predicate.constant)
        elif isinstance(predicate, PredicateAttributeAttribute):
            self.attr_index = predicate.attr_left_index
            self._right_index = predicate.attr_right_index
        else:
            raise TypeError(f"unsupported predicate {type(predicate).__name__}")
        self._input_regs: list[Register] = []

    def open(self) -> None:
        self.input.open()
        self._input_regs = self.input.get_output()

    def _right_operand(self) -> Register:
        if self._constant is not None:
            return self._constant
        return self._input_regs[self._right_index]

    def next(self) -> bool:
        compare = self.predicate_type.compare
        while self.input.next():
            if compare(self._input_regs[self.attr_index], self._right_operand()):
                return True
        return False

    def close(self) -> None:
        self.input.close()
        self._input_regs = []

    def get_output(self) -> list[Register]:
        return self.input.get_output()


@dataclass(frozen=True)
class Criterion:
    """One sort key: an attribute index and whether to sort descending."""

    attr_index: int
    desc: bool = False


class Sort(UnaryOperator):
    """Sorts its input by the given criteria, the first being the most significant."""

    def __init__(self, input: Operator, criteria: Sequence[Criterion]) -> None:
        super().__init__(input)
        self.criteria = tuple(criteria)
        self._input_regs: list[Register] = []
        self._output_regs: list[Register] = []
        self._rows: Iterator[list[Register]] | None = None

    def open(self) -> None:
        self.input.open()
        self._input_regs = self.input.get_output()
        self._output_regs = [Register() for _ in self._input_regs]
        self._rows = None

    def _sorted_rows(self) -> list[list[Register]]:
        rows = []
        while self.input.next():
            rows.append(_materialize(self._input_regs))
        for criterion in reversed(self.criteria):
            rows.sort(key=operator.itemgetter(criterion.attr_index), reverse=criterion.desc)
        return rows

    def next(self) -> bool:
        if self._rows is None:
            self._rows = iter(self._sorted_rows())
        row = next(self._rows, None)
        if row is None:
            return False
        _emit(self._output_regs, row)
        return True

    def close(self) -> None:
        self.input.close()
        self._rows = None

    def get_output(self) -> list[Register]:
        return self._output_regs


class HashJoin(BinaryOperator):
    """Inner equi-join on one attribute of each input; the left input is built into a hash table."""

    def __init__(
        self,
        input_left: Operator,
        input_right: Operator,
        attr_index_left: int,
        attr_index_right: int,
    ) -> None:
        super().__init__(input_left, input_right)
        self.attr_index_left = attr_index_left
        self.attr_index_right = attr_index_right
        self._left_regs: list[Register] = []
        self._right_regs: list[Register] = []
        self._output_regs: list[Register] = []
        self._rows: Iterator[list[Register]] | None = None

    def open(self) -> None:
        self.input_left.open()
        self.input_right.open()
        self._left_regs = self.input_left.get_output()
        self._right_regs = self.input_right.get_output()
        self._output_regs = [Register() for _ in range(len(self._left_regs) + len(self._right_regs))]
        self._rows = None

    def _joined(self) -> Iterator[list[Register]]:
        table: dict[Register, list[list[Register]]] = {}
        while self.input_left.next():
            row = _materialize(self._left_regs)
            table.setdefault(row[self.attr_index_left], []).append(row)
        while self.input_right.next():
            for left_row in table.get(self._right_regs[self.attr_index_right], ()):
                yield left_row + self._right_regs

    def next(self) -> bool:
        if self._rows is None:
            self._rows = self._joined()
        row = next(self._rows, None)
        if row is None:
            return False
        _emit(self._output_regs, row)
        return True

    def close(self) -> None:
        self.input_left.close()
        self.input_right.close()
        self._rows = None

    def get_output(self) -> list[Register]:
        return self._output_regs


class AggrFuncKind(enum.Enum):
    """The kind of aggregate to compute."""

    MIN = "min"
    MAX = "max"
    SUM = "sum"
    COUNT = "count"


@dataclass(frozen=True)
class AggrFunc:
    """An aggregate over one attribute; SUM requires an integer attribute."""

    func: AggrFuncKind
    attr_index: int


class HashAggregation(UnaryOperator):
    """Groups its input and computes aggregates per group.

    Each output tuple holds the group-by attributes followed by the aggregates.
    """

    def __init__(
        self,
        input: Operator,
        group_by_attrs: Sequence[int],
        aggr_funcs: Sequence[AggrFunc],
    ) -> None:
        super().__init__(input)
        self.group_by_attrs = tuple(group_by_attrs)
        self.aggr_funcs = tuple(aggr_funcs)
        self._input_regs: list[Register] = []
        self._output_regs: list[Register] = []
        self._rows: Iterator[list[Register]] | None = None

    def open(self) -> None:
        self.input.open()
        self._input_regs = self.input.get_output()
        self._output_regs = [
            Register() for _ in range(len(self.group_by_attrs) + len(self.aggr_funcs))
        ]
        self._rows = None

    def _initial(self, func: AggrFunc) -> Register:
        if func.func in (AggrFuncKind.MIN, AggrFuncKind.MAX):
            return copy.copy(self._input_regs[func.attr_index])
        return Register.from_int(0)

    def _update(self, func: AggrFunc, current: Register) -> Register:
        value = self._input_regs[func.attr_index]
        if func.func is AggrFuncKind.MIN:
            return copy.copy(min(current, value))
        if func.func is AggrFuncKind.MAX:
            return copy.copy(max(current, value))
        if func.func is AggrFuncKind.SUM:
            return Register.from_int(current.as_int() + value.as_int())
        return Register.from_int(current.as_int() + 1)

    def _groups(self) -> Iterator[list[Register]]:
        groups: dict[tuple[Register, ...], list[Register]] = {}
        while self.input.next():
            key = tuple(copy.copy(self._input_regs[index]) for index in self.group_by_attrs)
            aggregates = groups.get(key)
            if aggregates is None:
                aggregates = groups[key] = [self._initial(func) for func in self.aggr_funcs]
            aggregates[:] = [
                self._update(func, current) for func, current in zip(self.aggr_funcs, aggregates)
            ]
        for key, aggregates in groups.items():
            yield [*key, *aggregates]

    def next(self) -> bool:
        if self._rows is None:
            self._rows = self._groups()
        row = next(self._rows, None)
        if row is None:
            return False
        _emit(self._output_regs, row)
        return True

    def close(self) -> None:
        self.input.close()
        self._rows = None

    def get_output(self) -> list[Register]:
        return self._output_regs