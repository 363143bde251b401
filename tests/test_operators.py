import io

import pytest

from dbkernel.operators import (
    AggrFunc,
    AggrFuncKind,
    Criterion,
    HashAggregation,
    HashJoin,
    Operator,
    PredicateAttributeAttribute,
    PredicateAttributeChar16,
    PredicateAttributeInt64,
    PredicateType,
    Print,
    Projection,
    Select,
    Sort,
)
from dbkernel.register import Register


class TupleSource(Operator):
    def __init__(self, tuples):
        self.tuples = list(tuples)
        self.index = 0
        self.width = len(self.tuples[0]) if self.tuples else 1
        self.output_regs = []
        self.opened = False
        self.closed = False

    def open(self):
        self.output_regs = [Register() for _ in range(self.width)]
        self.opened = True

    def next(self):
        if self.index >= len(self.tuples):
            return False
        for reg, value in zip(self.output_regs, self.tuples[self.index]):
            reg.assign(Register(value))
        self.index += 1
        return True

    def close(self):
        self.closed = True

    def get_output(self):
        return self.output_regs


STUDENTS = [
    (24002, "Xenokrates      "),
    (26120, "Fichte          "),
    (29555, "Feuerbach       "),
]

GRADES = [
    (24002, 5001, 1),
    (24002, 5041, 2),
    (29555, 4630, 2),
]


def sort_output(text):
    return "".join(sorted(text.splitlines(keepends=True)))


def run(op_factory, *sources):
    out = io.StringIO()
    printer = Print(op_factory(*sources), out)
    printer.open()
    for source in sources:
        assert source.opened
        assert not source.closed
    while printer.next():
        pass
    printer.close()
    for source in sources:
        assert source.closed
    return out.getvalue()


def test_print():
    source = TupleSource(STUDENTS)
    out = run(lambda s: s, source)
    assert out == (
        "24002,Xenokrates      \n"
        "26120,Fichte          \n"
        "29555,Feuerbach       \n"
    )


def test_print_has_no_output_registers():
    printer = Print(TupleSource(STUDENTS), io.StringIO())
    printer.open()
    assert printer.get_output() == []


def test_projection():
    out = run(lambda s: Projection(s, [0]), TupleSource(STUDENTS))
    assert sort_output(out) == "24002\n26120\n29555\n"


def test_projection_of_second_attribute():
    out = run(lambda s: Projection(s, [1]), TupleSource(STUDENTS))
    assert sort_output(out) == "Feuerbach       \nFichte          \nXenokrates      \n"


def test_select_int_eq():
    pred = PredicateAttributeInt64(0, 26120, PredicateType.EQ)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert sort_output(out) == "26120,Fichte          \n"


def test_select_string_eq():
    pred = PredicateAttributeChar16(1, "Feuerbach       ", PredicateType.EQ)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert sort_output(out) == "29555,Feuerbach       \n"


def test_select_int_ne():
    pred = PredicateAttributeInt64(0, 26120, PredicateType.NE)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert sort_output(out) == "24002,Xenokrates      \n29555,Feuerbach       \n"


@pytest.mark.parametrize("ptype", [PredicateType.LT, PredicateType.LE])
def test_select_int_lower(ptype):
    pred = PredicateAttributeInt64(0, 25000, ptype)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert sort_output(out) == "24002,Xenokrates      \n"


@pytest.mark.parametrize("ptype", [PredicateType.GT, PredicateType.GE])
def test_select_int_greater(ptype):
    pred = PredicateAttributeInt64(0, 25000, ptype)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert sort_output(out) == "26120,Fichte          \n29555,Feuerbach       \n"


def test_select_attr_attr():
    numbers = [(1, 1), (1, 2), (1, 3), (1, 4), (2, 1), (2, 3), (3, 2)]
    pred = PredicateAttributeAttribute(0, 1, PredicateType.GE)
    out = run(lambda s: Select(s, pred), TupleSource(numbers))
    assert sort_output(out) == "1,1\n2,1\n3,2\n"


def test_select_mixed_types_cannot_be_ordered():
    pred = PredicateAttributeChar16(0, "abc", PredicateType.LT)
    select = Select(TupleSource(STUDENTS), pred)
    select.open()
    with pytest.raises(TypeError):
        select.next()


def test_select_mixed_types_never_equal():
    pred = PredicateAttributeChar16(0, "24002", PredicateType.EQ)
    out = run(lambda s: Select(s, pred), TupleSource(STUDENTS))
    assert out == ""


def test_sort():
    out = run(lambda s: Sort(s, [Criterion(0, True), Criterion(2, False)]), TupleSource(GRADES))
    assert out == "29555,4630,2\n24002,5001,1\n24002,5041,2\n"


def test_sort_is_stable_for_equal_keys():
    rows = [(2, "b"), (1, "x"), (2, "a"), (1, "y")]
    out = run(lambda s: Sort(s, [Criterion(0, True)]), TupleSource(rows))
    assert out == "2,b\n2,a\n1,x\n1,y\n"


def test_hash_join():
    out = run(lambda l, r: HashJoin(l, r, 0, 0), TupleSource(STUDENTS), TupleSource(GRADES))
    assert sort_output(out) == (
        "24002,Xenokrates      ,24002,5001,1\n"
        "24002,Xenokrates      ,24002,5041,2\n"
        "29555,Feuerbach       ,29555,4630,2\n"
    )


def test_hash_join_duplicate_left_keys():
    left = TupleSource([(1, "a"), (1, "b"), (2, "c")])
    right = TupleSource([(1, 10)])
    out = run(lambda l, r: HashJoin(l, r, 0, 0), left, right)
    assert sort_output(out) == "1,a,1,10\n1,b,1,10\n"


def test_hash_aggregation_min_max():
    funcs = [AggrFunc(AggrFuncKind.MIN, 1), AggrFunc(AggrFuncKind.MAX, 1)]
    out = run(lambda s: HashAggregation(s, [], funcs), TupleSource(STUDENTS))
    assert sort_output(out) == "Feuerbach       ,Xenokrates      \n"


def test_hash_aggregation_sum_count():
    funcs = [AggrFunc(AggrFuncKind.SUM, 2), AggrFunc(AggrFuncKind.COUNT, 0)]
    out = run(lambda s: HashAggregation(s, [0], funcs), TupleSource(GRADES))
    assert sort_output(out) == "24002,3,2\n29555,2,1\n"


def test_hash_aggregation_empty_input():
    funcs = [AggrFunc(AggrFuncKind.COUNT, 0)]
    out = run(lambda s: HashAggregation(s, [], funcs), TupleSource([]))
    assert out == ""


def test_hash_aggregation_sum_of_strings_fails():
    funcs = [AggrFunc(AggrFuncKind.SUM, 1)]
    agg = HashAggregation(TupleSource(STUDENTS), [], funcs)
    agg.open()
    with pytest.raises(TypeError):
        agg.next()


def test_operator_is_abstract():
    with pytest.raises(TypeError):
        Operator()