from support.debug_vars import collect_debug_vars

from conftest import JOB_ID


def test_debug_vars_without_publisher():
    data = collect_debug_vars()

    assert isinstance(data["cmdline"], list)
    assert data["memstats"]["max_rss_kb"] > 0
    assert data["publisher"] is None


def test_debug_vars_endpoint_reports_publisher_counters(client):
    client.post(
        f"/{JOB_ID}/status",
        json={"Hostname": "h1", "Message": "started", "State": "running"},
    )

    response = client.get("/debug/vars")

    assert response.status_code == 200
    publisher = response.json()["publisher"]
    assert publisher["state"] == "connected"
    assert publisher["exchange"] == "de"
    assert publisher["updates_published"] == 1
    assert publisher["publish_attempts"] == 1
    assert publisher["connect_attempts"] == 1
    assert publisher["reconnect_attempts"] == 0
    assert "amqp_uri" not in publisher
    assert "guest" not in str(response.json())
