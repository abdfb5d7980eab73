"""Tests for NetworksService: feature building and attachment resolution."""

import json

import pytest

from networks_api.models import MAX_ATTACHMENT_SLOTS, pad_slots
from networks_api.service import IMAGE, PHOTO, AttachmentNotFound, NetworksService
from services.airtable_client import AirtableError, AirtableRecord
from tests.conftest import SQUARE, FakeAirtable, FakeClock, attachment

BASE = "https://maps.example.org"


def photo_slots(properties) -> list:
    return [getattr(properties, f"photo{i}") for i in range(1, MAX_ATTACHMENT_SLOTS + 1)]


def image_slots(properties) -> list:
    return [getattr(properties, f"image{i}") for i in range(1, MAX_ATTACHMENT_SLOTS + 1)]


class TestPadSlots:

    def test_pads_and_counts(self):
        slots = pad_slots(["a", "b"], "photo")
        assert slots["photo1"] == "a"
        assert slots["photo3"] == ""
        assert slots["photo6"] == ""
        assert slots["photo_count"] == 2

    def test_truncates(self):
        slots = pad_slots([str(i) for i in range(9)], "image")
        assert slots["image6"] == "5"
        assert "image7" not in slots
        assert slots["image_count"] == 6


class TestBuildFeatureCollection:

    def test_end_to_end_two_records(self, fake_airtable: FakeAirtable, service: NetworksService):
        fake_airtable.add(
            "recAAAAAAAAAAAAAA",
            **{
                "Polygon": json.dumps(SQUARE),
                "Network Name": "Knox Unity",
                "Network Leaders Names": [{"id": "rec1", "name": "A"}, {"id": "rec2", "name": "B"}],
                "Photo": [attachment("one"), attachment("two")],
            }
        )
        fake_airtable.add("recBBBBBBBBBBBBBB", **{"Network Name": "No polygon"})

        collection = service.build_feature_collection(BASE)

        assert collection.type == "FeatureCollection"
        assert len(collection.features) == 1

        feature = collection.features[0]
        props = feature.properties
        assert feature.geometry == SQUARE
        assert props.id == "recAAAAAAAAAAAAAA"
        assert props.name == "Knox Unity"
        assert props.leaders == "A, B"
        assert props.photo_count == 2
        assert photo_slots(props) == [
            f"{BASE}/img/recAAAAAAAAAAAAAA/0",
            f"{BASE}/img/recAAAAAAAAAAAAAA/1",
            "", "", "", "",
        ]
        assert props.image_count == 0
        assert image_slots(props) == [""] * 6

    def test_bad_geometry_dropped_rest_returned(self, fake_airtable: FakeAirtable, service: NetworksService):
        fake_airtable.add("recAAAAAAAAAAAAAA", Polygon="not json")
        fake_airtable.add("recBBBBBBBBBBBBBB", Polygon=SQUARE)

        collection = service.build_feature_collection(BASE)

        assert [f.properties.id for f in collection.features] == ["recBBBBBBBBBBBBBB"]

    def test_pathological_cells_do_not_fail_the_collection(self, fake_airtable: FakeAirtable, service: NetworksService):
        nested = "[" * 100000 + "]" * 100000
        fake_airtable.add("recAAAAAAAAAAAAAA", Polygon=nested)
        fake_airtable.add(
            "recBBBBBBBBBBBBBB",
            **{"Polygon": SQUARE, "Photo": nested, "Network Leaders Names": nested}
        )

        collection = service.build_feature_collection(BASE)

        assert [f.properties.id for f in collection.features] == ["recBBBBBBBBBBBBBB"]
        assert collection.features[0].properties.photo_count == 0
        assert collection.features[0].properties.leaders == ""

    def test_upstream_failure_propagates(self, fake_airtable: FakeAirtable, service: NetworksService):
        fake_airtable.add("recAAAAAAAAAAAAAA", Polygon=SQUARE)
        fake_airtable.fail_status = 500

        with pytest.raises(AirtableError):
            service.build_feature_collection(BASE)

    def test_view_and_page_size_are_forwarded(self, fake_airtable: FakeAirtable, clock: FakeClock):
        from services.url_cache import UrlCache

        svc = NetworksService(
            client=fake_airtable.client(),
            table_name="Networks",
            url_cache=UrlCache(clock=clock),
            view="Published",
            page_size=50,
        )
        svc.build_feature_collection(BASE)

        params = fake_airtable.requests[0].url.params
        assert params["view"] == "Published"
        assert params["pageSize"] == "50"


class TestBuildFeature:

    def record(self, **fields) -> AirtableRecord:
        return AirtableRecord(id="recAAAAAAAAAAAAAA", fields={"Polygon": SQUARE, **fields})

    def test_defaults_for_absent_fields(self, service: NetworksService):
        props = service.build_feature(self.record(), BASE).properties

        assert props.name == ""
        assert props.leaders == ""
        assert props.contact_email == ""
        assert props.status == ""
        assert props.county == ""
        assert props.tags == ""
        assert props.number_of_churches == ""
        assert props.unity_lead == ""
        assert props.photo_count == 0
        assert props.image_count == 0

    def test_returns_none_without_geometry(self, service: NetworksService):
        record = AirtableRecord(id="recA", fields={"Polygon": '{"coordinates": []}'})
        assert service.build_feature(record, BASE) is None

    def test_more_than_six_attachments_become_six_proxies(self, service: NetworksService):
        photos = [attachment(str(i)) for i in range(8)]
        props = service.build_feature(self.record(Image=photos), BASE).properties

        assert props.image_count == 6
        assert image_slots(props) == [f"{BASE}/image/recAAAAAAAAAAAAAA/{i}" for i in range(6)]

    def test_plain_urls_are_embedded_and_truncated(self, service: NetworksService):
        urls = [f"https://cdn.example.org/{i}.png" for i in range(8)]
        props = service.build_feature(self.record(Photo=",".join(urls)), BASE).properties

        assert props.photo_count == 6
        assert photo_slots(props) == urls[:6]

    def test_lookup_photos_are_flattened(self, service: NetworksService):
        value = '["https:////cdn.example.org//a.png","https://cdn.example.org/a.png"]'
        props = service.build_feature(self.record(Photo=value), BASE).properties

        assert props.photo_count == 1
        assert props.photo1 == "https://cdn.example.org/a.png"

    def test_text_properties(self, service: NetworksService):
        record = self.record(**{
            "Contact Email": [{"email": "lead@example.org"}],
            "Contact email": "ignored@example.org",
            "Status": {"name": "Active"},
            "County": ["Knox", "Blount", "Knox"],
            "Tags": ["urban", "rural"],
            "Number of Churches": 12,
            "Unity Lead": [{"name": "Pat"}],
        })
        props = service.build_feature(record, BASE).properties

        assert props.contact_email == "lead@example.org"
        assert props.status == "Active"
        assert props.county == "Knox, Blount"
        assert props.tags == "urban, rural"
        assert props.number_of_churches == 12
        assert props.unity_lead == "Pat"

    def test_contact_email_fallback_order(self, service: NetworksService):
        record = self.record(**{"contact email": "first@example.org", "Contact Email": "second@example.org"})
        assert service.build_feature(record, BASE).properties.contact_email == "first@example.org"

    def test_base_url_trailing_slash(self, service: NetworksService):
        props = service.build_feature(self.record(Photo=[attachment("a")]), BASE + "/").properties
        assert props.photo1 == f"{BASE}/img/recAAAAAAAAAAAAAA/0"


class TestResolveAttachment:

    @pytest.fixture
    def with_photos(self, fake_airtable: FakeAirtable) -> FakeAirtable:
        fake_airtable.add(
            "recAAAAAAAAAAAAAA",
            Polygon=SQUARE,
            Photo=[attachment("one"), {"filename": "broken.jpg"}, {}, None],
            Image=[attachment("img", with_thumbnails=False)],
        )
        return fake_airtable

    def test_resolves_and_caches(self, with_photos: FakeAirtable, service: NetworksService, clock: FakeClock):
        first = service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 0)
        clock.advance(60)
        second = service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 0)

        assert first == second == "https://dl.airtable.test/one-l.jpg"
        assert with_photos.get_calls == 1

    def test_refetches_after_ttl(self, with_photos: FakeAirtable, service: NetworksService, clock: FakeClock):
        service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 0)
        clock.advance(481)
        service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 0)

        assert with_photos.get_calls == 2

    def test_fields_are_cached_independently(self, with_photos: FakeAirtable, service: NetworksService):
        assert service.resolve_attachment(IMAGE, "recAAAAAAAAAAAAAA", 0) == (
            "https://dl.airtable.test/img.jpg?sig=orig"
        )
        service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 0)

        assert with_photos.get_calls == 2

    def test_index_out_of_range(self, with_photos: FakeAirtable, service: NetworksService):
        with pytest.raises(AttachmentNotFound, match="Photo not found"):
            service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 5)

    def test_attachment_without_url(self, with_photos: FakeAirtable, service: NetworksService):
        with pytest.raises(AttachmentNotFound, match="Photo URL missing"):
            service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 1)

    def test_empty_object_is_present_without_url(self, with_photos: FakeAirtable, service: NetworksService):
        with pytest.raises(AttachmentNotFound, match="Photo URL missing"):
            service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 2)

    def test_null_slot_is_not_found(self, with_photos: FakeAirtable, service: NetworksService):
        with pytest.raises(AttachmentNotFound, match="Photo not found"):
            service.resolve_attachment(PHOTO, "recAAAAAAAAAAAAAA", 3)

    def test_field_not_an_array(self, fake_airtable: FakeAirtable, service: NetworksService):
        fake_airtable.add("recCCCCCCCCCCCCCC", Image="https://cdn.example.org/a.png")
        with pytest.raises(AttachmentNotFound, match="Image not found"):
            service.resolve_attachment(IMAGE, "recCCCCCCCCCCCCCC", 0)

    def test_upstream_failure(self, fake_airtable: FakeAirtable, service: NetworksService):
        with pytest.raises(AirtableError):
            service.resolve_attachment(PHOTO, "recMISSING000000", 0)
