import json
import unittest
from decimal import Decimal

from wikibase_edit.codec import WireCodec, dumps
from wikibase_edit.documents import (
    FormDocument,
    ItemDocument,
    LexemeDocument,
    MediaInfoDocument,
    PropertyDocument,
    SenseDocument,
    SiteLink,
)
from wikibase_edit.errors import InconsistentId, MalformedId, UnsupportedWireType, WireDecodeError
from wikibase_edit.ids import FormId, ItemId, LexemeId, MediaInfoId, PropertyId, SenseId
from wikibase_edit.updates import (
    AliasUpdate,
    ItemUpdate,
    LexemeUpdate,
    StatementUpdate,
    TermUpdate,
)
from wikibase_edit.values import (
    FrozenMap,
    GlobeCoordinatesValue,
    MonolingualTextValue,
    NoValueSnak,
    QuantityValue,
    Reference,
    SnakGroup,
    SomeValueSnak,
    Statement,
    StatementRank,
    StringValue,
    Term,
    TimeValue,
    ValueSnak,
)

Q42 = ItemId("Q42")
P31 = PropertyId("P31")


class EntityIdCodecTests(unittest.TestCase):
    def setUp(self) -> None:
        self.codec = WireCodec()

    def test_item_id_value(self) -> None:
        encoded = self.codec.encode_value(Q42)
        self.assertEqual(
            encoded,
            {"value": {"entity-type": "item", "numeric-id": 42, "id": "Q42"}, "type": "wikibase-entityid"},
        )
        self.assertEqual(self.codec.decode_value(encoded), Q42)

    def test_form_id_value_omits_numeric_id(self) -> None:
        encoded = self.codec.encode_entity_id(FormId("L42-F1"))
        self.assertEqual(encoded, {"entity-type": "form", "id": "L42-F1"})
        self.assertEqual(self.codec.decode_entity_id(encoded), FormId("L42-F1"))

    def test_entity_type_is_optional_on_decode(self) -> None:
        self.assertEqual(self.codec.decode_entity_id({"id": "L42-S1"}), SenseId("L42-S1"))
        self.assertEqual(self.codec.decode_entity_id({"entity-type": "item", "numeric-id": 5}), ItemId("Q5"))

    def test_inconsistent_ids(self) -> None:
        with self.assertRaises(InconsistentId):
            self.codec.decode_entity_id({"entity-type": "property", "id": "Q42"})
        with self.assertRaises(InconsistentId):
            self.codec.decode_entity_id({"entity-type": "item", "numeric-id": 41, "id": "Q42"})
        with self.assertRaises(UnsupportedWireType):
            self.codec.decode_entity_id({"entity-type": "widget", "id": "Q42"})
        with self.assertRaises(WireDecodeError):
            self.codec.decode_entity_id({"entity-type": "item"})

    def test_decoded_ids_use_codec_site(self) -> None:
        codec = WireCodec("https://commons.wikimedia.org/entity/")
        decoded = codec.decode_entity_id({"id": "M5"})
        self.assertEqual(decoded, MediaInfoId("M5", "https://commons.wikimedia.org/entity/"))


class ValueCodecTests(unittest.TestCase):
    def setUp(self) -> None:
        self.codec = WireCodec()

    def test_round_trips(self) -> None:
        values = [
            StringValue("hello"),
            MonolingualTextValue("Bonjour", "fr"),
            QuantityValue(Decimal("1.5")),
            QuantityValue(Decimal("-3"), Decimal("-4"), Decimal("-2"), "http://www.wikidata.org/entity/Q11573"),
            TimeValue("+2001-01-01T00:00:00Z", precision=9),
            GlobeCoordinatesValue(51.5, -0.12, 0.01),
            PropertyId("P18"),
            LexemeId("L1"),
        ]
        for value in values:
            with self.subTest(value=value):
                self.assertEqual(self.codec.decode_value(self.codec.encode_value(value)), value)

    def test_quantity_amounts_are_signed_strings(self) -> None:
        encoded = self.codec.encode_value(QuantityValue(Decimal("1.5"), Decimal("1"), Decimal("2")))
        self.assertEqual(encoded["value"]["amount"], "+1.5")
        self.assertEqual(encoded["value"]["lowerBound"], "+1")
        self.assertEqual(encoded["value"]["unit"], "1")

    def test_unknown_types_fail(self) -> None:
        with self.assertRaises(UnsupportedWireType):
            self.codec.decode_value({"type": "musical-notation", "value": "x"})
        with self.assertRaises(UnsupportedWireType):
            self.codec.decode_snak({"snaktype": "maybevalue", "property": "P1"})
        with self.assertRaises(WireDecodeError):
            self.codec.decode_value({"type": "string"})


class StatementCodecTests(unittest.TestCase):
    def setUp(self) -> None:
        self.codec = WireCodec()

    def _statement(self) -> Statement:
        return Statement(
            Q42,
            ValueSnak(P31, ItemId("Q5"), "wikibase-item"),
            qualifiers=(SnakGroup(PropertyId("P580"), (SomeValueSnak(PropertyId("P580")),)),),
            references=(Reference((SnakGroup(PropertyId("P143"), (NoValueSnak(PropertyId("P143")),)),)),),
            rank=StatementRank.PREFERRED,
            statement_id="Q42$8372EF7A-A72E-4C5A-9CFE-0F5F1B6E4A7A",
        )

    def test_statement_shape(self) -> None:
        encoded = self.codec.encode_statement(self._statement())
        self.assertEqual(list(encoded), ["id", "rank", "mainsnak", "qualifiers", "references", "type"])
        self.assertEqual(encoded["rank"], "preferred")
        self.assertEqual(encoded["type"], "statement")
        self.assertEqual(encoded["references"][0]["snaks"]["P143"][0]["snaktype"], "novalue")

    def test_draft_omits_id_and_empty_sections(self) -> None:
        draft = Statement(Q42, NoValueSnak(P31))
        self.assertEqual(
            self.codec.encode_statement(draft),
            {"rank": "normal", "mainsnak": {"snaktype": "novalue", "property": "P31"}, "type": "statement"},
        )

    def test_round_trip_reads_subject_from_id(self) -> None:
        statement = self._statement()
        self.assertEqual(self.codec.decode_statement(self.codec.encode_statement(statement)), statement)

    def test_draft_needs_explicit_subject(self) -> None:
        encoded = self.codec.encode_statement(Statement(Q42, NoValueSnak(P31)))
        with self.assertRaises(WireDecodeError):
            self.codec.decode_statement(encoded)
        self.assertEqual(self.codec.decode_statement(encoded, Q42).subject, Q42)

    def test_split_qualifier_groups_survive_round_trip(self) -> None:
        p1, p2 = PropertyId("P1"), PropertyId("P2")
        statement = Statement(
            Q42,
            NoValueSnak(P31),
            qualifiers=(
                SnakGroup(p1, (NoValueSnak(p1),)),
                SnakGroup(p2, (NoValueSnak(p2),)),
                SnakGroup(p1, (SomeValueSnak(p1),)),
            ),
            statement_id="Q42$1",
        )
        encoded = self.codec.encode_statement(statement)
        self.assertEqual([snak["snaktype"] for snak in encoded["qualifiers"]["P1"]], ["novalue", "somevalue"])
        self.assertEqual(self.codec.decode_statement(encoded), statement)

    def test_loose_qualifier_snaks_are_grouped(self) -> None:
        p2 = PropertyId("P2")
        statement = Statement(Q42, NoValueSnak(P31), qualifiers=(NoValueSnak(p2),))
        self.assertEqual(statement.qualifiers, (SnakGroup(p2, (NoValueSnak(p2),)),))
        self.assertEqual(self.codec.encode_statement(statement)["qualifiers"]["P2"][0]["snaktype"], "novalue")
        with self.assertRaises(TypeError):
            Statement(Q42, NoValueSnak(P31), qualifiers=("P2",))

    def test_bad_property_id(self) -> None:
        with self.assertRaises(MalformedId):
            self.codec.decode_snak({"snaktype": "novalue", "property": "Q12345"})


class DocumentCodecTests(unittest.TestCase):
    def setUp(self) -> None:
        self.codec = WireCodec()

    def _round_trip(self, document):
        return self.codec.decode_document(json.loads(dumps(self.codec.encode_document(document))))

    def test_document_round_trips(self) -> None:
        form = FormDocument(
            FormId("L42-F1"),
            representations=[Term("en", "walks")],
            grammatical_features=[ItemId("Q2"), ItemId("Q1")],
            statements=[Statement(FormId("L42-F1"), NoValueSnak(P31), statement_id="L42-F1$abc")],
        )
        sense = SenseDocument(SenseId("L42-S1"), glosses=[Term("en", "to move on foot")])
        documents = [
            ItemDocument(
                Q42,
                labels=[Term("en", "Douglas Adams")],
                descriptions=[Term("en", "writer")],
                aliases=[Term("en", "DNA")],
                statements=[Statement(Q42, ValueSnak(P31, ItemId("Q5")), statement_id="Q42$1")],
                sitelinks=[SiteLink("enwiki", "Douglas Adams", (ItemId("Q17437796"),))],
                revision_id=1234,
            ),
            PropertyDocument(PropertyId("P31"), "wikibase-item", labels=[Term("en", "instance of")]),
            LexemeDocument(
                LexemeId("L42"),
                lexical_category=ItemId("Q24905"),
                language=ItemId("Q1860"),
                lemmas=[Term("en", "walk")],
                forms=[form],
                senses=[sense],
                revision_id=5,
            ),
            form,
            sense,
            MediaInfoDocument(MediaInfoId("M5"), labels=[Term("en", "A photo")]),
            ItemDocument(ItemId.placeholder()),
        ]
        for document in documents:
            with self.subTest(document=type(document).__name__):
                self.assertEqual(self._round_trip(document), document)

    def test_form_document_json(self) -> None:
        form = FormDocument(
            FormId("L42-F1"),
            representations=[Term("en", "foo")],
            grammatical_features=[ItemId("Q2"), ItemId("Q1")],
            revision_id=1234,
        )
        self.assertEqual(
            self.codec.encode_document(form),
            {
                "type": "form",
                "id": "L42-F1",
                "representations": {"en": {"language": "en", "value": "foo"}},
                "grammaticalFeatures": ["Q1", "Q2"],
                "claims": {},
                "lastrevid": 1234,
            },
        )

    def test_placeholder_and_zero_revision_are_omitted(self) -> None:
        encoded = self.codec.encode_document(ItemDocument(ItemId.placeholder()))
        self.assertNotIn("id", encoded)
        self.assertNotIn("lastrevid", encoded)

    def test_empty_maps_may_arrive_as_lists(self) -> None:
        decoded = self.codec.decode_document(
            {"type": "item", "id": "Q42", "labels": [], "descriptions": [], "aliases": [], "claims": [],
             "sitelinks": [], "lastrevid": 3}
        )
        self.assertEqual(decoded, ItemDocument(Q42, revision_id=3))

    def test_mediainfo_accepts_claims_key(self) -> None:
        decoded = self.codec.decode_document(
            {
                "type": "mediainfo",
                "id": "M5",
                "claims": {"P31": [{"mainsnak": {"snaktype": "novalue", "property": "P31"}, "id": "M5$x"}]},
            }
        )
        self.assertEqual(decoded.find_statement("M5$x").subject, MediaInfoId("M5"))

    def test_document_errors(self) -> None:
        with self.assertRaises(UnsupportedWireType):
            self.codec.decode_document({"type": "widget", "id": "Q1"})
        with self.assertRaises(InconsistentId):
            self.codec.decode_document({"type": "property", "id": "Q1", "datatype": "string"})
        with self.assertRaises(WireDecodeError):
            self.codec.decode_document({"id": "Q1"})
        with self.assertRaises(WireDecodeError):
            self.codec.decode_document({"type": "item", "id": "Q1", "labels": "nope"})
        for document in (
            {"type": "item", "id": "Q1", "labels": {"en": "nope"}},
            {"type": "item", "id": "Q1", "aliases": {"en": ["nope"]}},
            {"type": "item", "id": "Q1", "aliases": {"en": "nope"}},
            {"type": "item", "id": "Q1", "sitelinks": {"enwiki": "nope"}},
        ):
            with self.subTest(document=document):
                with self.assertRaises(WireDecodeError):
                    self.codec.decode_document(document)


class UpdateCodecTests(unittest.TestCase):
    def setUp(self) -> None:
        self.codec = WireCodec()

    def test_term_update_patch(self) -> None:
        update = TermUpdate([Term("en", "hello")], ["de"])
        self.assertEqual(
            self.codec.encode_term_update(update),
            {"en": {"language": "en", "value": "hello"}, "de": {"language": "de", "remove": ""}},
        )

    def test_alias_update_patch(self) -> None:
        update = AliasUpdate((Term("en", "a"),), (Term("en", "b"),))
        self.assertEqual(
            self.codec.encode_alias_update(update),
            [{"language": "en", "value": "a", "add": ""}, {"language": "en", "value": "b", "remove": ""}],
        )
        recreated = AliasUpdate(recreated=(Term("en", "c"),))
        self.assertEqual(self.codec.encode_alias_update(recreated), [{"language": "en", "value": "c"}])

    def test_item_update_only_has_changed_sections(self) -> None:
        update = ItemUpdate(
            Q42,
            123,
            labels=TermUpdate([Term("en", "hello")]),
            aliases={"en": AliasUpdate((Term("en", "hi"),))},
            statements=StatementUpdate(removed=("Q42$1",)),
            removed_sitelinks=frozenset({"enwiki"}),
        )
        patch = self.codec.encode_update(update)
        self.assertEqual(list(patch), ["labels", "aliases", "claims", "sitelinks"])
        self.assertEqual(patch["claims"], [{"id": "Q42$1", "remove": ""}])
        self.assertEqual(patch["sitelinks"], {"enwiki": {"site": "enwiki", "remove": ""}})

    def test_lexeme_update_patch(self) -> None:
        new_form = FormDocument(FormId.placeholder(), representations=[Term("en", "walked")])
        update = LexemeUpdate(
            LexemeId("L42"),
            lexical_category=ItemId("Q24905"),
            added_forms=(new_form,),
            removed_senses=frozenset({SenseId("L42-S1")}),
        )
        patch = self.codec.encode_update(update)
        self.assertEqual(patch["lexicalCategory"], "Q24905")
        self.assertEqual(
            patch["forms"],
            [
                {
                    "representations": {"en": {"language": "en", "value": "walked"}},
                    "grammaticalFeatures": [],
                    "claims": {},
                    "add": "",
                }
            ],
        )
        self.assertEqual(patch["senses"], [{"id": "L42-S1", "remove": ""}])
        self.assertNotIn("lemmas", patch)

    def test_frozen_map_equality_ignores_order(self) -> None:
        self.assertEqual(FrozenMap([("a", 1), ("b", 2)]), FrozenMap([("b", 2), ("a", 1)]))


if __name__ == "__main__":
    unittest.main()
