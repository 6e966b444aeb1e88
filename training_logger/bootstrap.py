"""Startup: restore the GitHub config, run the loaders, seed the date inputs."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable

from training_logger.config import RemoteConfig, load_remote_config
from training_logger.loaders import DEFAULT_LOADERS, LoadOutcome
from training_logger.state import AppState

logger = logging.getLogger(__name__)

MEASUREMENT_DATE_FIELD = "measurementDate"
PICTURE_DATE_FIELD = "pictureDate"
GITHUB_FIELDS = ("githubToken", "githubUsername", "githubRepo", "githubFolder")

Loader = Callable[[AppState], Any]


class FormSurface:
    """The form fields a page exposes, keyed by element id."""

    def __init__(self, fields: Iterable[str] = ()):
        self._values: dict[str, str] = {name: "" for name in fields}

    def has(self, element_id: str) -> bool:
        return element_id in self._values

    def get(self, element_id: str) -> str | None:
        return self._values.get(element_id)

    def set_value_if_present(self, element_id: str, value: str) -> bool:
        if not self.has(element_id):
            return False
        self._values[element_id] = value
        return True

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


def page_surface() -> FormSurface:
    return FormSurface((MEASUREMENT_DATE_FIELD, PICTURE_DATE_FIELD, *GITHUB_FIELDS))


@dataclass
class BootstrapReport:
    outcomes: list[LoadOutcome] = field(default_factory=list)
    today: str = ""

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> list[LoadOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "today": self.today, "outcomes": [o.to_dict() for o in self.outcomes]}


class AppBootstrapper:
    def __init__(
        self,
        state: AppState,
        surface: FormSurface | None = None,
        loaders: Iterable[Loader] = DEFAULT_LOADERS,
        config_loader: Callable[[], RemoteConfig] = load_remote_config,
        today: Callable[[], date] = date.today,
    ):
        self.state = state
        self.surface = surface if surface is not None else FormSurface()
        self.loaders = list(loaders)
        self.config_loader = config_loader
        self.today = today
        self.report: BootstrapReport | None = None

    def initialize(self) -> BootstrapReport:
        """Bring the app into its initial state. Runs once; later calls return the first report."""
        if self.report is not None:
            return self.report

        self._restore_config()
        report = BootstrapReport()
        for loader in self.loaders:
            report.outcomes.append(self._run_loader(loader))

        report.today = self.today().isoformat()
        self.surface.set_value_if_present(MEASUREMENT_DATE_FIELD, report.today)
        self.surface.set_value_if_present(PICTURE_DATE_FIELD, report.today)

        if report.failed:
            logger.warning(
                "Startup finished with %d failed loader(s): %s",
                len(report.failed),
                ", ".join(o.name for o in report.failed),
            )
        else:
            logger.info("Startup finished, %d loaders ok", len(report.outcomes))
        self.report = report
        return report

    def _restore_config(self) -> None:
        try:
            config = self.config_loader()
        except Exception:
            logger.exception("Could not restore GitHub configuration, keeping defaults")
            return
        self.state.remote_config = config
        self.surface.set_value_if_present("githubToken", config.token)
        self.surface.set_value_if_present("githubUsername", config.username)
        self.surface.set_value_if_present("githubRepo", config.repo)
        self.surface.set_value_if_present("githubFolder", config.folder)

    def _run_loader(self, loader: Loader) -> LoadOutcome:
        target = getattr(loader, "func", loader)
        name = getattr(target, "__name__", repr(loader))
        try:
            result = loader(self.state)
        except Exception as err:
            logger.exception("Loader %s failed", name)
            return LoadOutcome(name, False, "failed", error=str(err))
        if isinstance(result, LoadOutcome):
            return result
        return LoadOutcome(name, True, "unknown")
