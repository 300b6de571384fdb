import unittest

from wikibase_edit.documents import (
    FormDocument,
    ItemDocument,
    LexemeDocument,
    SiteLink,
    empty_document,
)
from wikibase_edit.errors import InvalidStatementGroup, MalformedId
from wikibase_edit.ids import FormId, ItemId, LexemeId, PropertyId, SenseId
from wikibase_edit.values import (
    NoValueSnak,
    Statement,
    StatementGroup,
    StringValue,
    Term,
    ValueSnak,
)

Q42 = ItemId("Q42")
P31 = PropertyId("P31")
P18 = PropertyId("P18")


def _statement(subject=Q42, prop=P31, value="x", statement_id=None):
    return Statement(subject, ValueSnak(prop, StringValue(value)), statement_id=statement_id)


class StatementModelTests(unittest.TestCase):
    def test_group_requires_shared_property_and_subject(self) -> None:
        with self.assertRaises(InvalidStatementGroup):
            StatementGroup((_statement(prop=P31), _statement(prop=P18)))
        with self.assertRaises(InvalidStatementGroup):
            StatementGroup((_statement(), _statement(subject=ItemId("Q1"))))
        with self.assertRaises(InvalidStatementGroup):
            StatementGroup(())

    def test_statement_id_shape(self) -> None:
        self.assertTrue(_statement().is_draft)
        self.assertFalse(_statement(statement_id="Q42$abc").is_draft)
        with self.assertRaises(MalformedId):
            _statement(statement_id="no-dollar")

    def test_same_claim_ignores_rank_and_id(self) -> None:
        first = _statement(statement_id="Q42$a")
        second = _statement().with_rank("preferred")
        self.assertTrue(first.same_claim(second))
        self.assertFalse(first.same_claim(Statement(Q42, NoValueSnak(P31))))


class DocumentTests(unittest.TestCase):
    def _item(self) -> ItemDocument:
        return ItemDocument(
            Q42,
            labels=[Term("en", "Douglas Adams")],
            aliases=[Term("en", "DNA"), Term("en", "DNA"), Term("fr", "Adams")],
            statements=[_statement(statement_id="Q42$1"), _statement(prop=P18, statement_id="Q42$2")],
            sitelinks=[SiteLink("enwiki", "Douglas Adams")],
            revision_id=7,
        )

    def test_subject_invariant(self) -> None:
        with self.assertRaises(InvalidStatementGroup) as ctx:
            ItemDocument(Q42, statements=[_statement(subject=ItemId("Q1"))])
        self.assertEqual(ctx.exception.code, "INVALID_STATEMENT_GROUP")

    def test_revision_round_trip_preserves_document(self) -> None:
        item = self._item()
        self.assertEqual(item.with_revision_id(99).with_revision_id(item.revision_id), item)
        self.assertEqual(item.with_revision_id(99).labels, item.labels)

    def test_aliases_are_deduplicated(self) -> None:
        item = self._item()
        self.assertEqual(item.aliases["en"], (Term("en", "DNA"),))
        self.assertEqual(item.aliases["fr"], (Term("fr", "Adams"),))

    def test_term_derivations(self) -> None:
        item = self._item().with_label(Term("de", "Douglas Adams")).without_label("en")
        self.assertEqual(set(item.labels), {"de"})
        item = item.with_description(Term("en", "writer"))
        self.assertEqual(item.descriptions["en"].text, "writer")
        self.assertEqual(self._item().without_label("xx"), self._item())

    def test_with_statement_replaces_by_id_and_keeps_group_order(self) -> None:
        item = self._item()
        replacement = _statement(value="y", statement_id="Q42$1")
        updated = item.with_statement(replacement)
        self.assertEqual(list(updated.statements), ["P31", "P18"])
        self.assertEqual(updated.find_statement("Q42$1").value, StringValue("y"))
        appended = item.with_statement(_statement(value="z"))
        self.assertEqual(len(appended.statements["P31"]), 2)

    def test_with_statement_rewrites_foreign_subject(self) -> None:
        updated = self._item().with_statement(_statement(subject=ItemId("Q1"), prop=P18))
        self.assertTrue(all(s.subject == Q42 for s in updated.all_statements()))

    def test_without_statement_ids(self) -> None:
        updated = self._item().without_statement_ids(["Q42$2"])
        self.assertIsNone(updated.find_statement_group(P18))
        self.assertTrue(updated.has_statement_value(P31, StringValue("x")))

    def test_sitelinks(self) -> None:
        item = self._item().with_sitelink(SiteLink("dewiki", "Douglas Adams", (ItemId("Q17437796"),)))
        self.assertEqual(set(item.sitelinks), {"enwiki", "dewiki"})
        self.assertEqual(set(item.without_sitelink("enwiki").sitelinks), {"dewiki"})

    def test_form_features_are_sorted(self) -> None:
        form = FormDocument(FormId("L42-F1"), grammatical_features=[ItemId("Q2"), ItemId("Q1"), ItemId("Q2")])
        self.assertEqual(form.grammatical_features, (ItemId("Q1"), ItemId("Q2")))
        self.assertIs(form.with_grammatical_feature(ItemId("Q1")), form)

    def test_lexeme_forms_and_senses(self) -> None:
        lexeme = LexemeDocument(LexemeId("L42"), lemmas=[Term("en", "walk")])
        form = FormDocument(FormId("L42-F1"), representations=[Term("en", "walks")])
        lexeme = lexeme.with_form(form)
        self.assertEqual(lexeme.find_form(FormId("L42-F1")), form)
        renamed = form.with_representation(Term("en", "walked"))
        self.assertEqual(lexeme.with_form(renamed).forms, (renamed,))
        self.assertEqual(lexeme.without_form(FormId("L42-F1")).forms, ())
        self.assertIsNone(lexeme.find_sense(SenseId("L42-S1")))
        self.assertTrue(lexeme.language.is_placeholder)

    def test_with_entity_id_renames_subjects(self) -> None:
        draft = ItemDocument(ItemId.placeholder(), statements=[_statement(subject=ItemId.placeholder())])
        stored = draft.with_entity_id(ItemId("Q5"))
        self.assertTrue(all(s.subject == ItemId("Q5") for s in stored.all_statements()))

    def test_empty_document(self) -> None:
        self.assertEqual(empty_document(Q42, 3), ItemDocument(Q42, revision_id=3))
        self.assertIsInstance(empty_document(LexemeId("L1")), LexemeDocument)


if __name__ == "__main__":
    unittest.main()
