from authlane.services.auth.drivers.base import AuthDriver
from authlane.services.auth.drivers.stateful import StatefulDriver
from authlane.services.auth.drivers.stateless import StatelessDriver

__all__ = ["AuthDriver", "StatefulDriver", "StatelessDriver"]
