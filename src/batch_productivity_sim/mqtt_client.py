"""MQTT publisher for simulation results.

Results go out as retained JSON under the site's UNS path so a dashboard can
chart the latest run without calling the generator itself. Messages are
queued and sent from a background thread; whatever is still queued when the
client disconnects is sent first.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .config import MQTTConfig, UNSConfig

logger = logging.getLogger(__name__)


@dataclass
class Message:
    """Queued MQTT message."""

    topic: str
    payload: Dict[str, Any]
    retain: bool = False
    qos: int = 1

    def encode(self) -> str:
        return json.dumps(self.payload)


class MQTTClient:
    """Publishes result messages to a broker, or only logs them in dry-run mode."""

    # Outside the UNS path so one subscription sees every simulator instance
    STATUS_TOPIC = "batch-productivity-sim/status"

    def __init__(self, mqtt_config: MQTTConfig, uns_config: UNSConfig):
        self.mqtt_config = mqtt_config
        self.uns_config = uns_config

        self._client: Optional[mqtt.Client] = None
        self._dry_run = False
        self._ready = threading.Event()
        self._stopping = threading.Event()
        self._queue: "Queue[Message]" = Queue()
        self._worker: Optional[threading.Thread] = None

        self._lock = threading.Lock()
        self._published = 0
        self._dropped = 0

    @property
    def connected(self) -> bool:
        return self._ready.is_set()

    @property
    def messages_published(self) -> int:
        return self._published

    @property
    def messages_dropped(self) -> int:
        return self._dropped

    @property
    def base_topic(self) -> str:
        uns = self.uns_config
        return f"{uns.topic_prefix}/{uns.enterprise}/{uns.site}"

    def connect(self, dry_run: bool = False, timeout: float = 10.0) -> bool:
        """Connect and start the publish worker. Returns False if the broker is unreachable."""
        self._dry_run = dry_run
        broker, port = self.mqtt_config.broker, self.mqtt_config.port

        if dry_run:
            logger.info("Dry run mode - messages are logged, not sent")
            self._ready.set()
        else:
            try:
                self._client = self._make_client()
                logger.info(f"Connecting to MQTT broker {broker}:{port}")
                self._client.connect(broker, port)
                self._client.loop_start()
            except (OSError, ValueError) as e:
                logger.error(f"Failed to connect to MQTT broker {broker}:{port}: {e}")
                self._client = None
                return False

            if not self._ready.wait(timeout):
                logger.error(f"No answer from MQTT broker {broker}:{port} within {timeout:g}s")
                self._client.loop_stop()
                self._client = None
                return False

        self._stopping.clear()
        self._worker = threading.Thread(target=self._drain, name="mqtt-publish", daemon=True)
        self._worker.start()

        if not dry_run:
            self._enqueue(self.STATUS_TOPIC, self._status(), retain=True)
        return True

    def disconnect(self) -> None:
        """Send anything still queued, then close the connection."""
        self._stopping.set()
        if self._worker is not None:
            self._worker.join(timeout=2)
            self._worker = None

        while True:
            try:
                msg = self._queue.get_nowait()
            except Empty:
                break
            self._record(self._send(msg))

        if self._client is not None:
            self._client.disconnect()
            self._client.loop_stop()
            self._client = None

        self._ready.clear()
        logger.info(
            f"Disconnected from MQTT broker ({self._published} published, "
            f"{self._dropped} dropped)"
        )

    def publish(self, topic: str, payload: Dict[str, Any], retain: bool = False) -> bool:
        """Queue a message under the UNS base topic. False if it was dropped."""
        return self._enqueue(f"{self.base_topic}/{topic}", payload, retain)

    def _enqueue(self, topic: str, payload: Dict[str, Any], retain: bool) -> bool:
        if not self.connected:
            logger.warning(f"Not connected - dropping message for {topic}")
            self._record(False)
            return False
        self._queue.put(Message(topic, payload, retain, self.mqtt_config.qos))
        return True

    def _drain(self) -> None:
        while not self._stopping.is_set():
            try:
                msg = self._queue.get(timeout=0.1)
            except Empty:
                continue
            self._record(self._send(msg))

    def _send(self, msg: Message) -> bool:
        body = msg.encode()
        if self._dry_run:
            logger.debug(f"[DRY RUN] {msg.topic}: {body[:100]}")
            return True
        if self._client is None or not self.connected:
            return False

        try:
            info = self._client.publish(msg.topic, body, qos=msg.qos, retain=msg.retain)
        except ValueError as e:
            logger.error(f"Cannot publish to {msg.topic}: {e}")
            return False
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Publish to {msg.topic} failed: {mqtt.error_string(info.rc)}")
            return False
        return True

    def _record(self, sent: bool) -> None:
        with self._lock:
            if sent:
                self._published += 1
            else:
                self._dropped += 1

    def _status(self) -> Dict[str, Any]:
        return {
            "enterprise": self.uns_config.enterprise,
            "site": self.uns_config.site,
            "base_topic": self.base_topic,
            "timestamp_ms": int(time.time() * 1000),
        }

    def _make_client(self) -> mqtt.Client:
        client = mqtt.Client(
            client_id=self.mqtt_config.client_id,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        )
        if self.mqtt_config.username:
            client.username_pw_set(self.mqtt_config.username, self.mqtt_config.password)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code == 0:
            logger.info(f"Connected to MQTT broker {self.mqtt_config.broker}")
            self._ready.set()
        else:
            logger.error(f"MQTT broker refused the connection: {reason_code}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._ready.clear()
        if reason_code != 0:
            logger.warning(f"Lost connection to MQTT broker: {reason_code}")
