"""Tests for the HTTP API, against a temporary database."""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from specserver.app import app
from specserver.spec_store import SpecStore, get_store

SCENARIO_CSV = (
    "Сценарий: оплата заказа\n"
    "ТАБЛИЧНОЕ ОПИСАНИЕ ШАГОВ СЦЕНАРИЯ\n"
    "№,Шаг сценария,Описание шага\n"
    "1,Открыть корзину,\n"
    '2,Проверка карты,"Если карта заблокирована, переход к шагу 4"\n'
    "3,Оплата,\n"
    "4,Завершение,\n"
)


@pytest.fixture
def store(tmp_path):
    store = SpecStore(tmp_path / "api.db")
    store.init_db()
    return store


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _graph_payload(**extra):
    payload = {
        "nodes": [
            {"id": "1", "type": "start", "position": {"x": 100, "y": 80}, "data": {"title": "Старт"}},
            {
                "id": "2",
                "type": "block",
                "position": {"x": 160, "y": 110},
                "data": {"title": "Проверка", "realType": "condition", "selected": True},
            },
            {"id": 3, "type": "end", "data": {"title": "Конец", "description": "Готово"}},
        ],
        "edges": [
            {"id": "e1", "source": "1", "target": "2"},
            {"id": "e2", "source": "2", "target": "3", "label": "Да", "data": {"condition": "ok"}},
            {"id": "e3", "source": "2", "target": "99", "label": "Нет"},
        ],
    }
    payload.update(extra)
    return payload


def _create_spec(client, title="Оплата заказа"):
    response = client.post("/api/specs", json={"title": title})
    assert response.status_code == 201
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0"}


class TestUsersApi:
    def test_create_and_list(self, client):
        response = client.post("/api/users", json={"username": "alice"})
        assert response.status_code == 201
        assert response.json()["username"] == "alice"

        assert [u["username"] for u in client.get("/api/users").json()] == ["alice"]

    def test_duplicate(self, client):
        client.post("/api/users", json={"username": "alice"})
        assert client.post("/api/users", json={"username": "alice"}).status_code == 409

    def test_blank_username(self, client):
        assert client.post("/api/users", json={"username": "  "}).status_code == 400


class TestSpecsApi:
    def test_create_spec(self, client):
        created = _create_spec(client)
        assert created["spec"]["title"] == "Оплата заказа"
        assert created["version"]["version_number"] == 1
        assert created["version"]["status"] == "draft"
        assert created["version"]["comment"] == "Первая версия"
        assert created["spec"]["current_version_id"] == created["version"]["id"]

    def test_list_specs(self, client):
        created = _create_spec(client)
        items = client.get("/api/specs").json()
        assert len(items) == 1
        assert items[0]["current_version"]["id"] == created["version"]["id"]

    def test_blank_title(self, client):
        assert client.post("/api/specs", json={"title": ""}).status_code == 400

    def test_missing_title(self, client):
        assert client.post("/api/specs", json={}).status_code == 422

    def test_unknown_author(self, client):
        response = client.post("/api/specs", json={"title": "A", "created_by_id": 5})
        assert response.status_code == 404

    def test_versions_of_unknown_spec(self, client):
        assert client.get("/api/specs/999/versions").status_code == 404


class TestGraphApi:
    def test_save_and_load(self, client):
        version_id = _create_spec(client)["version"]["id"]

        response = client.put(
            f"/api/versions/{version_id}/graph",
            json=_graph_payload(plain_text="1. Старт", comment="набросок"),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        # the edge to node 99 is dropped
        assert body["dropped_edges"] == 1
        assert body["version"]["plain_text"] == "1. Старт"
        assert body["version"]["comment"] == "набросок"

        graph = client.get(f"/api/versions/{version_id}/graph").json()
        nodes = {node["id"]: node for node in graph["nodes"]}
        assert list(nodes) == ["1", "2", "3"]
        assert nodes["2"]["type"] == "condition"
        assert nodes["2"]["data"]["realType"] == "condition"
        assert nodes["3"]["data"]["description"] == "Готово"
        assert nodes["1"]["position"] == {"x": 100, "y": 80}

        edges = [(e["source"], e["target"], e["label"]) for e in graph["edges"]]
        assert edges == [("1", "2", ""), ("2", "3", "Да")]
        assert graph["edges"][1]["data"]["condition"] == "ok"
        # edge ids are the stored transition ids
        assert all(edge["id"].isdigit() for edge in graph["edges"])

    def test_save_replaces_graph(self, client):
        version_id = _create_spec(client)["version"]["id"]
        client.put(f"/api/versions/{version_id}/graph", json=_graph_payload())
        client.put(
            f"/api/versions/{version_id}/graph",
            json={"nodes": [{"id": "A", "data": {"title": "Один"}}], "edges": []},
        )

        graph = client.get(f"/api/versions/{version_id}/graph").json()
        assert [node["id"] for node in graph["nodes"]] == ["A"]
        assert graph["nodes"][0]["type"] == "action"
        assert graph["edges"] == []

    def test_unknown_version(self, client):
        assert client.get("/api/versions/404/graph").status_code == 404
        assert client.put("/api/versions/404/graph", json=_graph_payload()).status_code == 404
        assert client.get("/api/versions/404").status_code == 404

    def test_version_with_spec(self, client):
        created = _create_spec(client)
        body = client.get(f"/api/versions/{created['version']['id']}").json()
        assert body["version_number"] == 1
        assert body["spec"]["title"] == "Оплата заказа"


class TestForkAndCompare:
    def test_fork_then_compare(self, client):
        created = _create_spec(client)
        spec_id = created["spec"]["id"]
        v1 = created["version"]["id"]
        client.put(f"/api/versions/{v1}/graph", json=_graph_payload())

        response = client.post(f"/api/specs/{spec_id}/versions/1/fork")
        assert response.status_code == 201
        fork = response.json()
        assert fork["version_number"] == 2
        assert fork["based_on_version_id"] == v1
        assert fork["comment"] == "Новая версия на основе 1"
        v2 = fork["id"]

        unchanged = client.get(
            f"/api/specs/{spec_id}/versions/compare", params={"from": v1, "to": v2}
        ).json()
        assert unchanged["steps"] == {"added": [], "removed": [], "changed": []}
        assert unchanged["transitions"] == {"added": [], "removed": []}

        payload = _graph_payload()
        payload["nodes"][2]["data"]["title"] = "Чек"
        payload["nodes"].append({"id": "4", "type": "end", "data": {"title": "Отказ"}})
        payload["edges"][2]["target"] = "4"
        client.put(f"/api/versions/{v2}/graph", json=payload)

        comparison = client.get(
            f"/api/specs/{spec_id}/versions/compare", params={"from": v1, "to": v2}
        ).json()
        assert comparison["spec_id"] == spec_id
        assert comparison["from_version"]["version_number"] == 1
        assert comparison["to_version"] == {"id": v2, "version_number": 2, "status": "draft"}
        assert [s["step_key"] for s in comparison["steps"]["added"]] == ["4"]
        assert comparison["steps"]["changed"] == [
            {
                "step_key": "3",
                "before": {"title": "Конец", "description": "Готово", "type": "end"},
                "after": {"title": "Чек", "description": "Готово", "type": "end"},
            }
        ]
        assert comparison["transitions"]["added"] == [
            {"from_key": "2", "to_key": "4", "label": "Нет"}
        ]
        assert comparison["transitions"]["removed"] == []

        graph = client.get(f"/api/versions/{v2}/graph", params={"compare_to": v1}).json()
        status = {node["id"]: node["data"]["diffStatus"] for node in graph["nodes"]}
        assert status == {"1": None, "2": None, "3": "changed", "4": "added"}
        edge_status = {
            (edge["source"], edge["target"]): edge["data"]["diffStatus"] for edge in graph["edges"]
        }
        assert edge_status == {("1", "2"): None, ("2", "3"): None, ("2", "4"): "added"}

    def test_fork_with_comment(self, client):
        spec_id = _create_spec(client)["spec"]["id"]
        response = client.post(
            f"/api/specs/{spec_id}/versions/1/fork", json={"comment": "ревью"}
        )
        assert response.json()["comment"] == "ревью"

    def test_fork_unknown_version(self, client):
        spec_id = _create_spec(client)["spec"]["id"]
        assert client.post(f"/api/specs/{spec_id}/versions/9/fork").status_code == 404

    def test_compare_across_specs(self, client):
        first = _create_spec(client, "A")
        second = _create_spec(client, "B")
        response = client.get(
            f"/api/specs/{first['spec']['id']}/versions/compare",
            params={"from": first["version"]["id"], "to": second["version"]["id"]},
        )
        assert response.status_code == 400

    def test_compare_unknown_version(self, client):
        created = _create_spec(client)
        response = client.get(
            f"/api/specs/{created['spec']['id']}/versions/compare",
            params={"from": created["version"]["id"], "to": 999},
        )
        assert response.status_code == 404

    def test_compare_requires_both_versions(self, client):
        created = _create_spec(client)
        response = client.get(
            f"/api/specs/{created['spec']['id']}/versions/compare",
            params={"from": created["version"]["id"]},
        )
        assert response.status_code == 422


class TestStatusApi:
    def test_publish(self, client):
        spec_id = _create_spec(client)["spec"]["id"]
        fork = client.post(f"/api/specs/{spec_id}/versions/1/fork").json()

        response = client.post(f"/api/versions/{fork['id']}/status", json={"status": "published"})
        assert response.status_code == 200
        assert response.json()["status"] == "published"

        spec = client.get("/api/specs").json()[0]
        assert spec["current_version_id"] == fork["id"]
        assert spec["current_version"]["status"] == "published"

    def test_invalid_status(self, client):
        version_id = _create_spec(client)["version"]["id"]
        response = client.post(f"/api/versions/{version_id}/status", json={"status": "done"})
        assert response.status_code == 422

    def test_unknown_version(self, client):
        response = client.post("/api/versions/77/status", json={"status": "approved"})
        assert response.status_code == 404


class TestImportApi:
    def _upload(self, client, content: str, filename="scenario.csv", **params):
        return client.post(
            "/api/import/scenario",
            params=params,
            files={"file": (filename, content.encode("utf-8"), "text/csv")},
        )

    def test_import_without_saving(self, client, store):
        response = self._upload(client, SCENARIO_CSV)
        assert response.status_code == 200
        body = response.json()
        assert body["version"] is None
        assert [node["id"] for node in body["nodes"]] == ["1", "2", "3", "4"]
        assert body["nodes"][1]["data"]["realType"] == "condition"
        edges = {(e["source"], e["target"]): e["label"] for e in body["edges"]}
        assert edges == {("1", "2"): "", ("2", "4"): "Если карта заблокирована", ("3", "4"): ""}
        assert store.list_specs() == []

    def test_import_into_version(self, client, store):
        version_id = _create_spec(client)["version"]["id"]
        response = self._upload(client, SCENARIO_CSV, version_id=version_id)
        assert response.status_code == 200
        assert response.json()["version"]["id"] == version_id

        snapshot = store.load_snapshot(version_id)
        assert [step.key for step in snapshot.steps] == ["1", "2", "3", "4"]
        assert len(snapshot.transitions) == 3

    def test_import_into_unknown_version(self, client):
        assert self._upload(client, SCENARIO_CSV, version_id=12).status_code == 404

    def test_no_step_table(self, client):
        response = self._upload(client, "просто текст\nбез таблицы\n")
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "no_header_found"

    def test_unsupported_file(self, client):
        response = self._upload(client, SCENARIO_CSV, filename="scenario.txt")
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "unsupported_file"

    def test_cp1251_csv(self, client):
        response = client.post(
            "/api/import/scenario",
            files={"file": ("scenario.csv", SCENARIO_CSV.encode("cp1251"), "text/csv")},
        )
        assert response.status_code == 200
        assert [node["id"] for node in response.json()["nodes"]] == ["1", "2", "3", "4"]

    def test_zip_that_is_not_a_workbook(self, client):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("a.txt", "not a sheet")
        response = client.post(
            "/api/import/scenario",
            files={"file": ("scenario.xlsx", buffer.getvalue(), "application/octet-stream")},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "unsupported_file"

    def test_undecodable_csv(self, client):
        response = client.post(
            "/api/import/scenario",
            files={"file": ("scenario.csv", b"\x98\x98,\x98\n", "text/csv")},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "unsupported_file"
