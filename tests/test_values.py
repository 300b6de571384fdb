import unittest
from decimal import Decimal

from wikibase_edit.ids import ItemId, PropertyId
from wikibase_edit.values import (
    EMPTY_MAP,
    FrozenMap,
    NoValueSnak,
    QuantityValue,
    SomeValueSnak,
    Statement,
    StatementRank,
    Term,
    ValueSnak,
    group_snaks,
    statement_map,
    term_map,
)

P31 = PropertyId("P31")
P18 = PropertyId("P18")


class ValueTests(unittest.TestCase):
    def test_frozen_map_is_copy_on_write(self) -> None:
        base = FrozenMap({"a": 1})
        changed = base.set("b", 2)
        self.assertEqual(dict(base), {"a": 1})
        self.assertEqual(dict(changed), {"a": 1, "b": 2})
        self.assertIs(base.delete("zz"), base)
        self.assertEqual(changed.delete("a"), FrozenMap({"b": 2}))
        self.assertEqual(hash(FrozenMap({"a": 1, "b": 2})), hash(FrozenMap({"b": 2, "a": 1})))

    def test_terms(self) -> None:
        with self.assertRaises(ValueError):
            Term("", "x")
        terms = term_map([Term("en", "a"), Term("en", "b")])
        self.assertEqual(terms["en"].text, "b")
        self.assertIs(term_map(None), EMPTY_MAP)

    def test_quantity(self) -> None:
        self.assertEqual(QuantityValue("2.50").amount, Decimal("2.50"))
        with self.assertRaises(ValueError):
            QuantityValue(Decimal("1"), lower_bound=Decimal("0"))

    def test_value_snak_checks_value_type(self) -> None:
        with self.assertRaises(TypeError):
            ValueSnak(P31, "Q5")

    def test_group_snaks_keeps_first_seen_order(self) -> None:
        groups = group_snaks([NoValueSnak(P18), SomeValueSnak(P31), NoValueSnak(P18)])
        self.assertEqual([group.property for group in groups], [P18, P31])
        self.assertEqual(len(groups[0].snaks), 2)

    def test_statement_accessors(self) -> None:
        subject = ItemId("Q1")
        statement = Statement(subject, ValueSnak(P31, ItemId("Q5")))
        self.assertEqual(statement.property, P31)
        self.assertEqual(statement.value, ItemId("Q5"))
        self.assertTrue(statement.is_draft)
        group = statement_map([statement])["P31"]
        self.assertEqual(group.property, P31)
        self.assertEqual(group.subject, subject)

    def test_statement_map(self) -> None:
        subject = ItemId("Q1")
        statements = [
            Statement(subject, NoValueSnak(P31)),
            Statement(subject, NoValueSnak(P18), rank="deprecated"),
            Statement(subject, SomeValueSnak(P31)),
        ]
        mapped = statement_map(statements)
        self.assertEqual(list(mapped), ["P31", "P18"])
        self.assertEqual(len(mapped["P31"]), 2)
        self.assertEqual(mapped["P18"].statements[0].rank, StatementRank.DEPRECATED)
        self.assertEqual(statement_map(mapped), mapped)


if __name__ == "__main__":
    unittest.main()
