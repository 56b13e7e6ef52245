"""
Host Session Provider Tests
"""
import pytest

from dvir_emailer.errors import RemoteUnavailable, SessionUnavailable
from dvir_emailer.session import CallbackSessionProvider, Session, StaticSessionProvider


class HostSession:
    """Mock host session object"""
    database = "acme"
    user_name = "admin@acme.com"


class TestSessionFromHost:
    """Test host payload parsing"""

    def test_dict_payload(self):
        session = Session.from_host({"database": "acme", "userName": "admin@acme.com"})

        assert session == Session(database="acme", user_name="admin@acme.com")

    def test_object_payload(self):
        assert Session.from_host(HostSession()).database == "acme"

    def test_missing_database(self):
        with pytest.raises(SessionUnavailable):
            Session.from_host({"userName": "admin@acme.com"})

    def test_session_unavailable_is_remote_unavailable(self):
        """Callers handling RemoteUnavailable also see session failures"""
        assert issubclass(SessionUnavailable, RemoteUnavailable)


class TestProviders:
    """Test provider implementations"""

    def test_static_provider(self):
        assert StaticSessionProvider("acme").get_session().database == "acme"

    def test_callback_provider(self):
        provider = CallbackSessionProvider(lambda callback: callback({"database": "acme"}))

        assert provider.get_session().database == "acme"

    def test_callback_never_called(self):
        provider = CallbackSessionProvider(lambda callback: None, timeout=0.01)

        with pytest.raises(SessionUnavailable):
            provider.get_session()

    def test_host_error_is_wrapped(self):
        def get_session(callback):
            raise ConnectionError("host gone")

        with pytest.raises(SessionUnavailable):
            CallbackSessionProvider(get_session).get_session()
