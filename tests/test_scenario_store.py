# tests/test_scenario_store.py
import pytest

from mortgage_calc_web.scenario_store import ScenarioStore


@pytest.fixture
def store(tmp_path):
    return ScenarioStore(f"sqlite:///{tmp_path / 'store.sqlite3'}", max_per_user=2)


def test_add_get_and_list(store):
    inputs = {"loan": {"principal": 1000}}
    store.add_scenario("user-a", "s1", "First", inputs)
    scenario = store.get_scenario("user-a", "s1")
    assert scenario.name == "First"
    assert scenario.inputs == inputs
    assert [s.id for s in store.list_scenarios("user-a")] == ["s1"]
    assert scenario.to_dict()["inputs"] == inputs
    assert store.list_scenarios("user-b") == []
    assert store.get_scenario("user-b", "s1") is None


def test_missing_token_is_ignored(store):
    store.add_scenario("", "s1", "First", {})
    assert store.list_scenarios("") == []
    assert store.get_scenario("", "s1") is None
    assert store.remove_scenario("", "s1") is False


def test_remove_only_own_scenarios(store):
    store.add_scenario("user-a", "s1", "First", {})
    assert store.remove_scenario("user-b", "s1") is False
    assert store.remove_scenario("user-a", "s1") is True
    assert store.list_scenarios("user-a") == []


def test_trim_and_clear(store):
    for index in range(4):
        store.add_scenario("user-a", f"s{index}", f"S{index}", {})
    store.add_scenario("user-b", "other", "Other", {})
    assert len(store.list_scenarios("user-a")) == 2
    store.clear_scenarios("user-a")
    assert store.list_scenarios("user-a") == []
    assert len(store.list_scenarios("user-b")) == 1
