import asyncio
import csv
import json
import logging

import pytest

from carrot_control.client import CarrotClient
from carrot_control.data_collector import DataCollector

from conftest import NUM_BEAMS


def scan_message(frame_id="/front_laser", value=5.0):
    return json.dumps(
        {
            "message_type": "scan",
            "frame_id": frame_id,
            "angle_min": -0.9,
            "angle_increment": 0.01,
            "ranges": [value] * NUM_BEAMS,
            "stamp": 12.5,
        }
    )


def goal_message(frame_id="/base_link", x=2.0, y=1.0):
    return json.dumps(
        {
            "message_type": "goal",
            "frame_id": frame_id,
            "position": [x, y, 0.0],
            "orientation": [0.0, 0.0, 0.0, 1.0],
        }
    )


class FakeWebSocket:
    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(json.loads(message))


@pytest.fixture
def client(tmp_path):
    collector = DataCollector(run_dir=str(tmp_path / "run"))
    with CarrotClient("ws://localhost:8765", data_collector=collector) as client:
        yield client


def read_rows(path):
    with open(path, newline="") as f:
        return list(csv.DictReader(f))


def test_invalid_uri_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        CarrotClient("http://localhost:8765", data_collector=DataCollector(run_dir=str(tmp_path)))


def test_scan_then_goal_produces_marker_and_command(client):
    client.parse_and_route_message(scan_message())
    client.parse_and_route_message(goal_message())

    assert [m["message_type"] for m in client.outbox] == ["marker", "cmd_vel"]
    command = client.outbox[1]
    assert command["linear"][0] > 0.0
    assert command["linear"][2] == 0.0

    client.data_collector.cleanup()
    assert len(read_rows(client.data_collector.scans_output_path)) == 1
    assert len(read_rows(client.data_collector.goals_output_path)) == 1
    assert read_rows(client.data_collector.commands_output_path)[0]["blocked"] == "0"


def test_bytes_messages_are_decoded(client):
    client.parse_and_route_message(scan_message().encode("utf-8"))

    assert client.controller.scan_buffer.latest() is not None


def test_scans_from_other_frames_are_not_logged(client):
    client.parse_and_route_message(scan_message(frame_id="/rear_laser"))

    client.data_collector.cleanup()
    assert client.controller.scan_buffer.latest() is None
    assert read_rows(client.data_collector.scans_output_path) == []


def test_goal_in_wrong_frame_produces_nothing(client, caplog):
    client.parse_and_route_message(scan_message())

    with caplog.at_level(logging.WARNING):
        client.parse_and_route_message(goal_message(frame_id="/map"))

    assert client.outbox == []
    assert "Goal rejected" in caplog.text


def test_malformed_messages_are_logged_and_dropped(client, caplog):
    with caplog.at_level(logging.ERROR):
        client.parse_and_route_message("{not json")
        client.parse_and_route_message(json.dumps({"message_type": "goal", "position": [1, 2, 0]}))
        client.parse_and_route_message(json.dumps({"message_type": "scan", "frame_id": "/front_laser"}))

    assert client.outbox == []
    assert "Error parsing JSON" in caplog.text
    assert "Error processing message data" in caplog.text


def test_stop_message_stops_client(client):
    client.parse_and_route_message(json.dumps({"message_type": "stop"}))

    assert client.should_stop


def test_unknown_messages_are_ignored(client):
    client.parse_and_route_message(json.dumps({"message_type": "status", "ok": True}))

    assert client.outbox == []
    assert not client.should_stop


def test_flush_outbox_sends_queued_messages(client):
    client.parse_and_route_message(scan_message())
    client.parse_and_route_message(goal_message())
    websocket = FakeWebSocket()

    asyncio.run(client.flush_outbox(websocket))

    assert client.outbox == []
    assert [m["message_type"] for m in websocket.sent] == ["marker", "cmd_vel"]
    assert websocket.sent[0]["ns"] == "carrot"


def test_custom_limits_reach_controller(tmp_path):
    from carrot_control.model import Limits

    limits = Limits.from_params({"max_vel_translation": 0.2})
    client = CarrotClient(
        "ws://localhost:8765", limits=limits, data_collector=DataCollector(run_dir=str(tmp_path))
    )

    assert client.controller.limits.max_vel == 0.2


@pytest.mark.parametrize("message", ["[1, 2, 3]", '"scan"', "5", "null"])
def test_non_object_json_is_logged_and_dropped(client, caplog, message):
    with caplog.at_level(logging.ERROR):
        client.parse_and_route_message(message)

    assert client.outbox == []
    assert not client.should_stop
    assert "not a JSON object" in caplog.text


def test_unexpected_handler_error_does_not_escape(client, caplog, monkeypatch):
    def explode(data):
        raise RuntimeError("sink failed")

    monkeypatch.setattr(client, "process_goal_message", explode)

    with caplog.at_level(logging.ERROR):
        client.parse_and_route_message(goal_message())

    assert "Unexpected error processing message: sink failed" in caplog.text
