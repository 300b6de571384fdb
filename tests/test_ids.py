import unittest

from wikibase_edit import config
from wikibase_edit.errors import MalformedId
from wikibase_edit.ids import (
    FormId,
    ItemId,
    LexemeId,
    MediaInfoId,
    PropertyId,
    SenseId,
    entity_id_from_numeric,
    parse_entity_id,
)


class EntityIdTests(unittest.TestCase):
    def test_valid_ids(self) -> None:
        self.assertEqual(ItemId("Q42").numeric_id, 42)
        self.assertEqual(PropertyId("P31").numeric_id, 31)
        self.assertEqual(LexemeId("L7").numeric_id, 7)
        self.assertEqual(MediaInfoId("M5").numeric_id, 5)
        self.assertEqual(ItemId("Q42").iri, "http://www.wikidata.org/entity/Q42")

    def test_rejects_malformed_ids(self) -> None:
        cases = [
            (PropertyId, "Q12345"),
            (PropertyId, "P34d23"),
            (LexemeId, "L"),
            (FormId, "L21"),
            (SenseId, "L21-F1"),
            (ItemId, "Q0"),
            (ItemId, "q42"),
        ]
        for id_class, raw in cases:
            with self.subTest(raw=raw, id_class=id_class.__name__):
                with self.assertRaises(MalformedId) as ctx:
                    id_class(raw)
                self.assertEqual(ctx.exception.code, "MALFORMED_ID")

    def test_compound_ids_have_no_numeric_id(self) -> None:
        form = FormId("L42-F1")
        self.assertIsNone(form.numeric_id)
        self.assertEqual(form.lexeme_id, LexemeId("L42"))
        self.assertEqual(SenseId("L42-S3").lexeme_id, LexemeId("L42"))

    def test_placeholder(self) -> None:
        new_item = ItemId.placeholder()
        self.assertTrue(new_item.is_placeholder)
        self.assertEqual(new_item.site_iri, config.PLACEHOLDER_SITE_IRI)
        self.assertIsNone(new_item.iri)
        with self.assertRaises(MalformedId):
            ItemId(None)

    def test_site_is_part_of_identity(self) -> None:
        self.assertNotEqual(ItemId("Q1"), ItemId("Q1", config.SITE_WIKIMEDIA_COMMONS))

    def test_from_numeric(self) -> None:
        self.assertEqual(entity_id_from_numeric("property", 31), PropertyId("P31"))
        with self.assertRaises(MalformedId):
            entity_id_from_numeric("form", 1)
        with self.assertRaises(MalformedId):
            entity_id_from_numeric("item", 0)
        with self.assertRaises(MalformedId):
            entity_id_from_numeric("widget", 1)

    def test_parse_dispatches_on_shape(self) -> None:
        self.assertIsInstance(parse_entity_id("Q1"), ItemId)
        self.assertIsInstance(parse_entity_id("L1-F2"), FormId)
        self.assertIsInstance(parse_entity_id("L1-S2"), SenseId)
        self.assertIsInstance(parse_entity_id("M9"), MediaInfoId)
        with self.assertRaises(MalformedId):
            parse_entity_id("X1")


if __name__ == "__main__":
    unittest.main()
