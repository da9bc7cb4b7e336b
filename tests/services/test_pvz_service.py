"""
Tests for PVZService: registration, lookup and the nested listing.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from pvz_kernel.domain.dtos import PVZListQuery
from pvz_kernel.domain.values import City, ProductType
from pvz_kernel.exceptions import (
    CityEmptyError,
    ErrorKind,
    InvalidCityError,
    PVZNotFoundError,
)
from pvz_kernel.models import PickupPoint


class TestCreatePVZ:
    def test_create_returns_registered_point(
        self, pvz_service, moderator_ctx, deterministic_clock
    ):
        created = pvz_service.create_pvz(moderator_ctx, "Moscow")

        assert created.city == City.MOSCOW
        assert created.registered_at == deterministic_clock.now()
        assert created.registered_at.tzinfo is not None

    def test_russian_city_name_is_normalized(self, pvz_service, moderator_ctx):
        created = pvz_service.create_pvz(moderator_ctx, "Санкт-Петербург")

        assert created.city == City.SAINT_PETERSBURG

    @pytest.mark.parametrize("city", ["", "   ", None])
    def test_empty_city_rejected(self, pvz_service, moderator_ctx, city):
        with pytest.raises(CityEmptyError) as excinfo:
            pvz_service.create_pvz(moderator_ctx, city)

        assert excinfo.value.kind is ErrorKind.VALIDATION

    def test_unsupported_city_rejected(self, pvz_service, moderator_ctx, count_rows):
        with pytest.raises(InvalidCityError) as excinfo:
            pvz_service.create_pvz(moderator_ctx, "Novosibirsk")

        assert excinfo.value.city == "Novosibirsk"
        assert "Kazan" in excinfo.value.allowed
        assert count_rows(PickupPoint) == 0

    def test_emits_pvz_created(self, pvz_service, moderator_ctx, event_sink):
        created = pvz_service.create_pvz(moderator_ctx, City.KAZAN)

        assert event_sink.names() == ["pvz_created"]
        assert event_sink.events[0].attributes["pvz_id"] == str(created.id)
        assert event_sink.events[0].attributes["city"] == "Kazan"


class TestGetPVZ:
    def test_get_by_id(self, pvz_service, moderator_ctx, pvz):
        assert pvz_service.get_pvz_by_id(moderator_ctx, pvz.id) == pvz

    def test_missing_pvz(self, pvz_service, moderator_ctx):
        missing = uuid4()

        with pytest.raises(PVZNotFoundError) as excinfo:
            pvz_service.get_pvz_by_id(moderator_ctx, missing)

        assert excinfo.value.pvz_id == str(missing)
        assert excinfo.value.kind is ErrorKind.NOT_FOUND


def _register(pvz_service, ctx, clock, cities):
    created = []
    for city in cities:
        created.append(pvz_service.create_pvz(ctx, city))
        clock.advance(60)
    return created


class TestListPVZs:
    def test_newest_first(self, pvz_service, moderator_ctx, deterministic_clock):
        first, second, third = _register(
            pvz_service,
            moderator_ctx,
            deterministic_clock,
            [City.MOSCOW, City.KAZAN, City.SAINT_PETERSBURG],
        )

        items = pvz_service.list_pvzs(moderator_ctx)

        assert [item.pvz.id for item in items] == [third.id, second.id, first.id]
        assert all(item.receptions == () for item in items)

    def test_pagination(self, pvz_service, moderator_ctx, deterministic_clock):
        created = _register(
            pvz_service, moderator_ctx, deterministic_clock, [City.MOSCOW] * 5
        )
        newest_first = [p.id for p in reversed(created)]

        page_1 = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(page=1, limit=2))
        page_2 = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(page=2, limit=2))
        page_3 = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(page=3, limit=2))

        assert [i.pvz.id for i in page_1] == newest_first[0:2]
        assert [i.pvz.id for i in page_2] == newest_first[2:4]
        assert [i.pvz.id for i in page_3] == newest_first[4:5]

    def test_limit_above_ceiling_falls_back_to_default(
        self, pvz_service, moderator_ctx, deterministic_clock
    ):
        _register(pvz_service, moderator_ctx, deterministic_clock, [City.KAZAN] * 12)

        items = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(limit=500))

        assert len(items) == 10

    def test_zero_page_and_limit_use_defaults(
        self, pvz_service, moderator_ctx, deterministic_clock
    ):
        _register(pvz_service, moderator_ctx, deterministic_clock, [City.KAZAN] * 12)

        items = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(page=0, limit=0))

        assert len(items) == 10

    def test_city_filter(self, pvz_service, moderator_ctx, deterministic_clock):
        moscow, kazan = _register(
            pvz_service, moderator_ctx, deterministic_clock, [City.MOSCOW, City.KAZAN]
        )

        items = pvz_service.list_pvzs(moderator_ctx, PVZListQuery(city="Казань"))

        assert [i.pvz.id for i in items] == [kazan.id]

    def test_invalid_city_filter(self, pvz_service, moderator_ctx):
        with pytest.raises(InvalidCityError):
            pvz_service.list_pvzs(moderator_ctx, PVZListQuery(city="Atlantis"))

    def test_nested_receptions_and_products(
        self,
        pvz_service,
        reception_service,
        product_service,
        ctx,
        moderator_ctx,
        deterministic_clock,
    ):
        pvz = pvz_service.create_pvz(moderator_ctx, City.MOSCOW)
        deterministic_clock.advance(60)
        older = reception_service.create_reception(ctx, pvz.id)
        product_service.add_product(ctx, pvz.id, ProductType.SHOES)
        reception_service.close_reception(ctx, pvz.id)
        deterministic_clock.advance(60)
        newer = reception_service.create_reception(ctx, pvz.id)
        product_service.add_product(ctx, pvz.id, ProductType.ELECTRONICS)
        product_service.add_product(ctx, pvz.id, ProductType.CLOTHES)

        (item,) = pvz_service.list_pvzs(moderator_ctx)

        assert item.pvz.id == pvz.id
        assert [r.reception.id for r in item.receptions] == [newer.id, older.id]
        newest = item.receptions[0]
        assert [p.sequence_number for p in newest.products] == [1, 2]
        assert [p.product_type for p in newest.products] == [
            ProductType.ELECTRONICS,
            ProductType.CLOTHES,
        ]
        assert [p.product_type for p in item.receptions[1].products] == [
            ProductType.SHOES
        ]

    def test_date_window_filters_points_and_receptions(
        self,
        pvz_service,
        reception_service,
        ctx,
        moderator_ctx,
        deterministic_clock,
    ):
        base = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        deterministic_clock.set_time(base)
        busy = pvz_service.create_pvz(moderator_ctx, City.MOSCOW)
        idle = pvz_service.create_pvz(moderator_ctx, City.KAZAN)

        early = reception_service.create_reception(ctx, busy.id)
        reception_service.close_reception(ctx, busy.id)
        deterministic_clock.set_time(base + timedelta(days=2))
        late = reception_service.create_reception(ctx, busy.id)

        query = PVZListQuery(
            start_date=base + timedelta(days=1),
            end_date=base + timedelta(days=3),
        )
        items = pvz_service.list_pvzs(moderator_ctx, query)

        assert [i.pvz.id for i in items] == [busy.id]
        assert [r.reception.id for r in items[0].receptions] == [late.id]
        assert early.id not in {r.reception.id for r in items[0].receptions}
        assert idle.id not in {i.pvz.id for i in items}

    def test_open_ended_date_window(
        self,
        pvz_service,
        reception_service,
        ctx,
        moderator_ctx,
        deterministic_clock,
    ):
        base = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        deterministic_clock.set_time(base)
        pvz = pvz_service.create_pvz(moderator_ctx, City.MOSCOW)
        reception = reception_service.create_reception(ctx, pvz.id)

        after = pvz_service.list_pvzs(
            moderator_ctx, PVZListQuery(start_date=base - timedelta(hours=1))
        )
        before = pvz_service.list_pvzs(
            moderator_ctx, PVZListQuery(end_date=base - timedelta(hours=1))
        )

        assert [r.reception.id for r in after[0].receptions] == [reception.id]
        assert before == []
