"""Unit tests for dslmeta.runtime.repository."""
from __future__ import annotations

from typing import Annotated

import pytest

from dslmeta.annotations import Field, entity
from dslmeta.core.errors import SchemaError, UnknownEntityError
from dslmeta.registry.store import MetadataStore
from dslmeta.runtime import (
    HookAction,
    HookRegistry,
    InMemoryRepository,
    LocalEventBus,
    PageOptions,
    PageResult,
    Repository,
    RepositoryMetadata,
)


@pytest.fixture()
def repo(order_domain: MetadataStore) -> InMemoryRepository:
    return InMemoryRepository("OrderLine", order_domain)


def _fill(repo: InMemoryRepository) -> None:
    for sku, quantity in (("B-2", 5), ("A-1", 2), ("C-3", 5)):
        repo.save({"orderId": "o-1", "sku": sku, "quantity": quantity})


# ===========================================================================
# Paging value objects
# ===========================================================================


class TestPageOptions:
    def test_defaults(self) -> None:
        options = PageOptions()
        assert (options.page_no, options.page_size, options.offset) == (1, 10, 0)

    def test_offset(self) -> None:
        assert PageOptions(page_no=3, page_size=20).offset == 40

    @pytest.mark.parametrize("kwargs", [{"page_no": 0}, {"page_size": 0}, {"sort": {"sku": "up"}}])
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            PageOptions(**kwargs)


class TestPageResult:
    def test_total_pages(self) -> None:
        result = PageResult(items=(), total=21, page_no=1, page_size=10)
        assert result.total_pages == 3
        assert result.has_next is True

    def test_empty(self) -> None:
        result = PageResult(items=(), total=0, page_no=1, page_size=10)
        assert result.total_pages == 0
        assert result.has_next is False


# ===========================================================================
# RepositoryMetadata
# ===========================================================================


class TestRepositoryMetadata:
    def test_for_entity(self, order_domain: MetadataStore) -> None:
        metadata = RepositoryMetadata.for_entity("Order", order_domain)
        assert metadata.table == "order"
        assert metadata.primary_key == "id"
        assert metadata.columns == {
            "id": "id",
            "total": "total",
            "status": "status",
            "customer": "customer_id",
        }

    def test_explicit_key_and_column(self, store: MetadataStore) -> None:
        @entity(table="skus", store=store)
        class Sku:
            code: Annotated[str, Field(primary_key=True, column="sku_code")]
            name: str

        metadata = RepositoryMetadata.for_entity("Sku", store)
        assert metadata.table == "skus"
        assert metadata.primary_key == "code"
        assert metadata.primary_key_column == "sku_code"

    def test_row_mapping(self, order_domain: MetadataStore) -> None:
        metadata = RepositoryMetadata.for_entity("Order", order_domain)
        row = metadata.to_row({"id": "o-1", "customer": "c-1", "lines": []})
        assert row == {"id": "o-1", "customer_id": "c-1"}
        assert metadata.from_row(row) == {"id": "o-1", "customer": "c-1"}

    def test_unknown_entity(self, order_domain: MetadataStore) -> None:
        with pytest.raises(UnknownEntityError):
            RepositoryMetadata.for_entity("Invoice", order_domain)

    def test_dto_has_no_table(self, order_domain: MetadataStore) -> None:
        with pytest.raises(SchemaError, match="dto"):
            RepositoryMetadata.for_entity("OrderSummary", order_domain)


# ===========================================================================
# InMemoryRepository
# ===========================================================================


class TestInMemoryRepository:
    def test_is_repository(self, repo: InMemoryRepository) -> None:
        assert isinstance(repo, Repository)
        assert repo.entity_id == "OrderLine"

    def test_save_assigns_sequential_keys(self, repo: InMemoryRepository) -> None:
        first = repo.save({"sku": "A-1", "quantity": 1})
        second = repo.save({"sku": "B-2", "quantity": 1})
        assert (first["id"], second["id"]) == (1, 2)
        assert len(repo) == 2

    def test_save_keeps_explicit_key(self, repo: InMemoryRepository) -> None:
        repo.save({"id": 7, "sku": "A-1"})
        assert repo.find_by_id(7) == {"id": 7, "sku": "A-1"}

    def test_returned_records_are_copies(self, repo: InMemoryRepository) -> None:
        saved = repo.save({"sku": "A-1", "quantity": 1})
        saved["quantity"] = 99
        stored = repo.find_by_id(saved["id"])
        assert stored is not None and stored["quantity"] == 1

    def test_update(self, repo: InMemoryRepository) -> None:
        saved = repo.save({"sku": "A-1", "quantity": 1})
        repo.save({**saved, "quantity": 3})
        assert repo.count() == 1
        assert repo.find_by_id(saved["id"])["quantity"] == 3  # type: ignore[index]

    def test_find_with_query_and_sort(self, repo: InMemoryRepository) -> None:
        _fill(repo)
        found = repo.find({"quantity": 5}, sort={"sku": "desc"})
        assert [r["sku"] for r in found] == ["C-3", "B-2"]

    def test_multi_key_sort(self, repo: InMemoryRepository) -> None:
        _fill(repo)
        found = repo.find(sort={"quantity": "desc", "sku": "asc"})
        assert [r["sku"] for r in found] == ["B-2", "C-3", "A-1"]

    def test_find_page(self, repo: InMemoryRepository) -> None:
        _fill(repo)
        page = repo.find_page(None, PageOptions(page_no=2, page_size=2, sort={"sku": "asc"}))
        assert [r["sku"] for r in page.items] == ["C-3"]
        assert page.total == 3
        assert page.total_pages == 2

    def test_count_with_query(self, repo: InMemoryRepository) -> None:
        _fill(repo)
        assert repo.count({"quantity": 5}) == 2

    def test_delete(self, repo: InMemoryRepository) -> None:
        saved = repo.save({"sku": "A-1"})
        assert repo.delete(saved["id"]) is True
        assert repo.delete(saved["id"]) is False
        assert repo.find_by_id(saved["id"]) is None

    def test_hooks_run_around_writes(self, order_domain: MetadataStore) -> None:
        hooks = HookRegistry()
        calls: list[str] = []
        hooks.before(HookAction.CREATE, lambda ctx: ctx.data.setdefault("quantity", 1), entity="OrderLine")
        hooks.after(HookAction.CREATE, lambda ctx: calls.append("created"))
        hooks.after(HookAction.UPDATE, lambda ctx: calls.append(f"updated from {ctx.previous['quantity']}"))
        hooks.after(HookAction.DELETE, lambda ctx: calls.append("deleted"))
        repo = InMemoryRepository("OrderLine", order_domain, hooks=hooks)

        saved = repo.save({"sku": "A-1"})
        assert saved["quantity"] == 1
        repo.save({**saved, "quantity": 4})
        repo.delete(saved["id"])
        assert calls == ["created", "updated from 1", "deleted"]

    def test_before_hook_can_veto(self, order_domain: MetadataStore) -> None:
        hooks = HookRegistry()

        def veto(ctx: object) -> None:
            raise PermissionError("read-only")

        hooks.before(HookAction.CREATE, veto)
        repo = InMemoryRepository("OrderLine", order_domain, hooks=hooks)
        with pytest.raises(PermissionError):
            repo.save({"sku": "A-1"})
        assert len(repo) == 0

    def test_read_hook_filters_results(self, order_domain: MetadataStore) -> None:
        hooks = HookRegistry()

        def hide_small(ctx: object) -> None:
            ctx.results = [r for r in ctx.results if r["quantity"] > 2]  # type: ignore[attr-defined]

        hooks.after(HookAction.READ, hide_small)
        repo = InMemoryRepository("OrderLine", order_domain, hooks=hooks)
        _fill(repo)
        assert sorted(r["sku"] for r in repo.find()) == ["B-2", "C-3"]

    def test_read_hook_edits_do_not_reach_stored_rows(self, order_domain: MetadataStore) -> None:
        hooks = HookRegistry()

        def redact(ctx: object) -> None:
            for r in ctx.results:  # type: ignore[attr-defined]
                r["sku"] = "***"

        hooks.after(HookAction.READ, redact)
        repo = InMemoryRepository("OrderLine", order_domain, hooks=hooks)
        saved = repo.save({"sku": "A-1"})
        assert [r["sku"] for r in repo.find()] == ["***"]
        hooks.remove(HookAction.READ, redact)
        assert repo.find_by_id(saved["id"])["sku"] == "A-1"  # type: ignore[index]

    def test_before_read_hook_can_narrow_query(self, order_domain: MetadataStore) -> None:
        hooks = HookRegistry()

        def only_a1(ctx: object) -> None:
            ctx.query["sku"] = "A-1"  # type: ignore[attr-defined]

        hooks.before(HookAction.READ, only_a1)
        repo = InMemoryRepository("OrderLine", order_domain, hooks=hooks)
        _fill(repo)
        assert [r["sku"] for r in repo.find()] == ["A-1"]

    def test_events_published(self, order_domain: MetadataStore) -> None:
        bus = LocalEventBus()
        topics: list[str] = []
        bus.subscribe("OrderLine.*", lambda record: topics.append(record["sku"]))
        bus.subscribe("OrderLine.deleted", lambda record: topics.append("deleted"))
        repo = InMemoryRepository("OrderLine", order_domain, events=bus)

        saved = repo.save({"sku": "A-1"})
        repo.delete(saved["id"])
        assert topics == ["A-1", "deleted", "A-1"]
