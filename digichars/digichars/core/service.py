"""
Provides standard for building background services
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import IntEnum, auto
from threading import Event

from reactivex import Observable
from reactivex.operators import observe_on
from reactivex.subject import BehaviorSubject

from digichars.core.logging import get_logger
from digichars.core.rx import default_scheduler


class ServiceLifecycleState(IntEnum):
    """
    Service lifecycle states

    Normal service lifecycle: NEW -> STARTING -> RUNNING -> STOPPING -> STOPPED

    A stopped service can be restarted, i.e., STOPPED -> STARTING
    """

    NEW = auto()
    STARTING = auto()
    START_FAILED = auto()
    RUNNING = auto()
    STOPPING = auto()
    STOPPED = auto()


@dataclass(slots=True)
class ServiceLifecycleEvent:
    """
    Service lifecycle state events
    """

    service_name: str
    state: ServiceLifecycleState


@dataclass(slots=True)
class ServiceError(Exception):
    """
    Base class for service errors
    """

    service_name: str
    cause: Exception | str

    def __str__(self) -> str:
        return f"[{self.service_name}] [{self.__class__.__name__}] {self.cause}"


class ServiceStartError(ServiceError):
    """
    Service failed to start
    """


class ServiceStopError(ServiceError):
    """
    Error occurred while trying to stop the service.
    """


class Service(ABC):
    """
    Services that run work in the background should extend Service, and implement the `_start` and `_stop` hooks.

    - Services have a defined lifecycle, see `ServiceLifecycleState`.
    - Service lifecycle events are published on an Observable[ServiceLifecycleEvent]
    """

    def __init__(self):
        self._state = ServiceLifecycleState.NEW
        self._logger = get_logger(self)

        self._state_subject: BehaviorSubject[ServiceLifecycleEvent] = BehaviorSubject(
            ServiceLifecycleEvent(self.name, self._state)
        )
        self._state_observable: Observable[
            ServiceLifecycleEvent
        ] = self._state_subject.pipe(observe_on(default_scheduler))

        self._running_event = Event()
        self._stopped_event = Event()

    @property
    def name(self) -> str:
        """
        By default, the type class name is used.
        """
        return self.__class__.__name__

    @property
    def state(self) -> ServiceLifecycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == ServiceLifecycleState.RUNNING

    @property
    def stopped(self) -> bool:
        return self._state == ServiceLifecycleState.STOPPED

    @property
    def lifecycle_state_observable(self) -> Observable[ServiceLifecycleEvent]:
        """
        Used to monitor service lifecycle events.
        """
        return self._state_observable

    def await_running(self, timeout: timedelta | None = None):
        """
        Used to await the service is running
        """
        if not self._running_event.wait(timeout.total_seconds() if timeout else None):
            raise TimeoutError

    def await_stopped(self, timeout: timedelta | None = None):
        """
        Used to await service shutdown
        """
        if not self._stopped_event.wait(timeout.total_seconds() if timeout else None):
            raise TimeoutError

    def start(self):
        """
        Start the service

        Notes
        -----
        - The service can only be started when service state in [NEW, STOPPED]
        - When state is in [RUNNING, STARTING], then this is a noop
        - If an error occurs while trying to start the service, then stop is triggered to give the service
          a chance to clean up, and a ServiceStartError is raised.
        """
        if self._state in (
            ServiceLifecycleState.RUNNING,
            ServiceLifecycleState.STARTING,
        ):
            return

        if self._state not in (ServiceLifecycleState.NEW, ServiceLifecycleState.STOPPED):
            raise ServiceStartError(
                self.name,
                f"service cannot be started when state is: {self._state.name}",
            )

        self._set_state(ServiceLifecycleState.STARTING)
        try:
            self._start()
            self._set_state(ServiceLifecycleState.RUNNING)
        except Exception as err:
            self._set_state(ServiceLifecycleState.START_FAILED)
            self.stop()
            raise ServiceStartError(self.name, "error occurred while starting") from err

    def stop(self):
        """
        Stop the service

        Notes
        -----
        - When state in [STOPPED, STOPPING], then this is a noop
        - A service cannot be stopped while it is starting
        """
        if self._state in (
            ServiceLifecycleState.STOPPED,
            ServiceLifecycleState.STOPPING,
        ):
            return

        if self._state == ServiceLifecycleState.STARTING:
            raise ServiceStopError(
                self.name,
                f"service cannot be stopped when state is: {self._state.name}",
            )

        if self._state == ServiceLifecycleState.NEW:
            self._set_state(ServiceLifecycleState.STOPPED)
            return

        self._set_state(ServiceLifecycleState.STOPPING)
        try:
            self._stop()
        except Exception as err:
            raise ServiceStopError(self.name, "error occurred while stopping") from err
        finally:
            self._set_state(ServiceLifecycleState.STOPPED)

    def _set_state(self, state: ServiceLifecycleState):
        self._logger.info("state transition: %s -> %s", self._state.name, state.name)

        self._state = state

        if state == ServiceLifecycleState.STARTING:
            self._stopped_event.clear()
        if state == ServiceLifecycleState.RUNNING:
            self._running_event.set()
        if state == ServiceLifecycleState.STOPPING:
            self._running_event.clear()
        if state == ServiceLifecycleState.STOPPED:
            self._stopped_event.set()

        self._state_subject.on_next(ServiceLifecycleEvent(self.name, state))

    @abstractmethod
    def _start(self):
        """
        Service startup hook
        """

    @abstractmethod
    def _stop(self):
        """
        Service shutdown hook
        """
