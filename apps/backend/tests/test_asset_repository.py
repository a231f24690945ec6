import asyncio
from decimal import Decimal

import pytest

from networth.schemas.asset import AssetDraft, AssetEntry, AssetType, Currency
from networth.services.asset_repository import (
    AssetRepository, LookupStatus, build_draft,
)


def _cash(name: str, amount: str) -> AssetDraft:
    return AssetDraft(name=name, type=AssetType.CASH, amount=Decimal(amount))


def _position(asset_type: AssetType, ticker: str, qty: str, price: str, amount: str = "0") -> AssetDraft:
    return AssetDraft(
        name=ticker,
        type=asset_type,
        ticker=ticker,
        quantity=Decimal(qty),
        purchase_price=Decimal(price),
        amount=Decimal(amount),
    )


def test_seeds_demo_assets_on_first_load(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store)
            await repo.load()
            stored = await store.load_assets()
            return repo.snapshot(), stored

    assets, stored = asyncio.run(scenario())

    assert [a.type for a in assets] == [AssetType.CASH, AssetType.CRYPTO, AssetType.STOCK]
    assert [a.name for a in stored] == ["Salary", "Bitcoin", "Apple Stock"]


def test_empty_store_without_seed(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            return repo.snapshot()

    assert asyncio.run(scenario()) == []


def test_cash_with_same_name_is_merged(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            first = await repo.add(_cash("Salary", "1000"))
            second = await repo.add(_cash("Salary", "1000"))
            return repo.snapshot(), first, second

    assets, first, second = asyncio.run(scenario())

    assert len(assets) == 1
    assert assets[0].amount == Decimal("2000")
    assert first.merged is False
    assert second.merged is True
    assert second.asset.id == first.asset.id


@pytest.mark.parametrize("amounts", [
    ["1", "2", "3"],
    ["0.1", "0.2", "0.3", "0.4"],
    ["1500000", "-200000", "35000"],
])
def test_cash_merge_sums_exactly(store_factory, amounts):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            for amount in amounts:
                await repo.add(_cash("Wallet", amount))
            return repo.snapshot()

    assets = asyncio.run(scenario())

    assert len(assets) == 1
    assert assets[0].amount == sum(Decimal(a) for a in amounts)


def test_cash_merge_keeps_other_fields(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(AssetDraft(
                name="Savings", type=AssetType.CASH, amount=Decimal("500"),
                currency=Currency.USD, category="Bank",
            ))
            await repo.add(AssetDraft(
                name="Savings", type=AssetType.CASH, amount=Decimal("100"),
                category="Other",
            ))
            return repo.snapshot()[0]

    merged = asyncio.run(scenario())

    assert merged.amount == Decimal("600")
    assert merged.currency == Currency.USD
    assert merged.category == "Bank"


def test_stock_merge_uses_weighted_average(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_position(AssetType.STOCK, "AAPL", "2", "100", "280000"))
            await repo.add(_position(AssetType.STOCK, "AAPL", "2", "200", "560000"))
            return repo.snapshot()

    assets = asyncio.run(scenario())

    assert len(assets) == 1
    assert assets[0].quantity == Decimal("4")
    assert assets[0].purchase_price == Decimal("150")
    assert assets[0].amount == Decimal("840000")


def test_crypto_merge_with_uneven_quantities(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_position(AssetType.CRYPTO, "BTC-USD", "0.5", "40000"))
            await repo.add(_position(AssetType.CRYPTO, "BTC-USD", "1.5", "60000"))
            await repo.add(_position(AssetType.CRYPTO, "BTC-USD", "1", "30000"))
            return repo.snapshot()[0]

    asset = asyncio.run(scenario())

    expected = (Decimal("0.5") * 40000 + Decimal("1.5") * 60000 + 30000) / Decimal("3")
    assert asset.quantity == Decimal("3")
    assert abs(asset.purchase_price - expected) < Decimal("1e-9")


def test_merge_with_zero_total_quantity_resets_price(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_position(AssetType.STOCK, "TSLA", "0", "250"))
            await repo.add(_position(AssetType.STOCK, "TSLA", "0", "300"))
            return repo.snapshot()

    assets = asyncio.run(scenario())

    assert len(assets) == 1
    assert assets[0].quantity == Decimal("0")
    assert assets[0].purchase_price == Decimal("0")


def test_same_ticker_different_type_is_not_merged(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_position(AssetType.STOCK, "COIN", "1", "100"))
            await repo.add(_position(AssetType.CRYPTO, "COIN", "1", "100"))
            return repo.snapshot()

    assert len(asyncio.run(scenario())) == 2


def test_real_estate_and_loans_never_merge(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            for _ in range(2):
                await repo.add(AssetDraft(name="Apartment", type=AssetType.REAL_ESTATE, amount=Decimal("500000000")))
                await repo.add(AssetDraft(name="Mortgage", type=AssetType.LOAN, amount=Decimal("200000000")))
            return repo.snapshot()

    assets = asyncio.run(scenario())

    assert len(assets) == 4
    assert len({a.id for a in assets}) == 4


def test_new_records_are_prepended(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_cash("First", "1"))
            await repo.add(_cash("Second", "2"))
            await repo.add(_position(AssetType.STOCK, "MSFT", "1", "10"))
            return [a.name for a in repo.snapshot()]

    assert asyncio.run(scenario()) == ["MSFT", "Second", "First"]


def test_update_replaces_whole_record(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            added = await repo.add(_cash("Salary", "1000"))
            changed = added.asset.model_copy(update={"amount": Decimal("42"), "name": "Bonus"})
            result = await repo.update(changed)
            return result, repo.get(added.asset.id)

    result, stored = asyncio.run(scenario())

    assert result.status == LookupStatus.FOUND
    assert stored.amount == Decimal("42")
    assert stored.name == "Bonus"


def test_update_and_remove_report_missing_id(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            added = await repo.add(_cash("Salary", "1000"))
            ghost = added.asset.model_copy(update={"id": "missing"})
            return (
                await repo.update(ghost),
                await repo.remove("missing"),
                repo.snapshot(),
            )

    update_result, remove_result, assets = asyncio.run(scenario())

    assert update_result.status == LookupStatus.NOT_FOUND
    assert update_result.asset is None
    assert remove_result.status == LookupStatus.NOT_FOUND
    assert len(assets) == 1
    assert assets[0].amount == Decimal("1000")


def test_remove_deletes_and_persists(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            added = await repo.add(_cash("Salary", "1000"))
            result = await repo.remove(added.asset.id)
            return result, await store.load_assets()

    result, stored = asyncio.run(scenario())

    assert result.found
    assert stored == []


def test_by_type_and_book_net_worth(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store, seed_demo=False)
            await repo.load()
            await repo.add(_cash("A", "100"))
            await repo.add(AssetDraft(name="Loan", type=AssetType.LOAN, amount=Decimal("30")))
            await repo.add(_cash("B", "50"))
            return repo.by_type(AssetType.CASH), repo.net_worth()

    cash, net_worth = asyncio.run(scenario())

    assert [a.name for a in cash] == ["B", "A"]
    assert net_worth == Decimal("120")


def test_state_round_trips_through_store(store_factory):
    async def scenario():
        async with store_factory() as store:
            repo = AssetRepository(store)
            await repo.load()
            await repo.add(_position(AssetType.STOCK, "AAPL", "3", "187.25", "786450"))
            await repo.add(AssetDraft(
                name="Apartment", type=AssetType.REAL_ESTATE, amount=Decimal("550000000"),
                purchase_price=Decimal("480000000"), current_price=Decimal("550000000"),
            ))
            before = repo.snapshot()

            reloaded = AssetRepository(store)
            await reloaded.load()
            return before, reloaded.snapshot()

    before, after = asyncio.run(scenario())

    assert after == before


def test_build_draft_converts_usd_to_krw():
    stock = build_draft(AssetEntry(
        name="Apple", type=AssetType.STOCK, currency=Currency.USD,
        purchase_price=Decimal("150"), quantity=Decimal("2"), ticker=" AAPL ",
    ), Decimal("1400"))
    cash = build_draft(AssetEntry(
        name="Dollars", type=AssetType.CASH, currency=Currency.USD, amount=Decimal("10.5"),
    ), Decimal("1400"))
    realty = build_draft(AssetEntry(
        name="House", type=AssetType.REAL_ESTATE,
        purchase_price=Decimal("300000000"), current_price=Decimal("350000000"),
    ), Decimal("1400"))

    assert stock.amount == Decimal("420000")
    assert stock.ticker == "AAPL"
    assert cash.amount == Decimal("14700")
    assert cash.ticker is None
    assert realty.amount == Decimal("350000000")
