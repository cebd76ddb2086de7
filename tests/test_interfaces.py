from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from conftest import ADMIN_CHANNEL, FakeSlackClient  # noqa: E402
from slack_intake.interfaces import ListBackend, MessagingEndpoint, RequestRepository  # noqa: E402
from slack_intake.lists.gateway import ListGateway  # noqa: E402
from slack_intake.slack_client import SlackClient  # noqa: E402
from slack_intake.store import RequestStore  # noqa: E402


def test_concrete_classes_satisfy_contracts():
    client = FakeSlackClient()
    gateway = ListGateway(client)
    messaging = SlackClient(client=client)

    assert isinstance(messaging, MessagingEndpoint)
    assert isinstance(gateway, ListBackend)
    assert isinstance(RequestStore(gateway, messaging, admin_channel_id=ADMIN_CHANNEL), RequestRepository)


def test_fake_client_is_not_a_messaging_endpoint():
    assert not isinstance(FakeSlackClient(), MessagingEndpoint)


class _RowOnlyStore:
    is_initialized = True

    def save_request(self, request_id, data):
        return "Rec1"

    def get_request(self, request_id):
        return None

    def update_request(self, request_id, updates):
        return False

    def add_status_history(self, request_id, entry):
        pass

    def get_status_history(self, request_id):
        return []

    def get_requests_by_status(self, status):
        return []

    def cache_request(self, request_id, data):
        pass

    def attach_list(self, list_id, schema=None):
        pass

    def health_check(self):
        return True


def test_repository_contract_requires_cache_lookups():
    assert not isinstance(_RowOnlyStore(), RequestRepository)
