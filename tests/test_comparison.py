from dexcatalog.services.comparison import ComparisonSelector, compare_stats


class TestComparisonSelector:
    def test_toggle_adds(self, make_detail) -> None:
        selector = ComparisonSelector()

        assert selector.toggle(make_detail(1, "bulbasaur"))
        assert [d.identifier for d in selector.current()] == ["bulbasaur"]
        assert not selector.is_ready()

    def test_toggle_removes_selected(self, make_detail) -> None:
        selector = ComparisonSelector()
        bulbasaur = make_detail(1, "bulbasaur")
        selector.toggle(bulbasaur)
        selector.toggle(make_detail(4, "charmander"))

        assert not selector.toggle(bulbasaur)
        assert [d.identifier for d in selector.current()] == ["charmander"]

    def test_third_evicts_oldest(self, make_detail) -> None:
        """Toggling three species leaves the second and third."""
        selector = ComparisonSelector()

        for numeric_id, name in [(1, "bulbasaur"), (4, "charmander"), (7, "squirtle")]:
            selector.toggle(make_detail(numeric_id, name))

        assert [d.identifier for d in selector.current()] == ["charmander", "squirtle"]
        assert selector.is_ready()

    def test_never_exceeds_capacity(self, make_detail) -> None:
        selector = ComparisonSelector()

        for numeric_id in range(1, 10):
            selector.toggle(make_detail(numeric_id, f"mon{numeric_id}"))
            assert len(selector) <= 2

    def test_evict(self, make_detail) -> None:
        selector = ComparisonSelector()
        selector.toggle(make_detail(1, "bulbasaur"))

        assert selector.evict("bulbasaur")
        assert not selector.evict("bulbasaur")
        assert len(selector) == 0

    def test_contains(self, make_detail) -> None:
        selector = ComparisonSelector()
        selector.toggle(make_detail(1, "bulbasaur"))

        assert "bulbasaur" in selector
        assert "ivysaur" not in selector


class TestCompareStats:
    def test_per_stat_leader(self, make_detail) -> None:
        first = make_detail(1, "bulbasaur", stats={"hp": 45, "attack": 49, "speed": 45})
        second = make_detail(4, "charmander", stats={"hp": 39, "attack": 52, "speed": 45})

        summary = compare_stats(first, second)

        leaders = {line.stat: line.leader for line in summary.lines}
        assert leaders == {"hp": "first", "attack": "second", "speed": "tie"}
        assert summary.first_total == 139
        assert summary.second_total == 136
        assert summary.total_leader == "first"

    def test_stat_order_follows_first(self, make_detail) -> None:
        first = make_detail(1, "a", stats={"speed": 1, "hp": 1})
        second = make_detail(2, "b", stats={"hp": 1, "attack": 5, "speed": 1})

        summary = compare_stats(first, second)

        assert [line.stat for line in summary.lines] == ["speed", "hp", "attack"]
        attack = summary.lines[-1]
        assert attack.first is None
        assert attack.leader == "second"
