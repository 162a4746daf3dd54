"""Installation facts of the ilitools consumed by the command builder."""

from dataclasses import dataclass
from pathlib import Path

from interlis_worker.config import IlitoolsSettings, ProxySettings


@dataclass(frozen=True)
class IlitoolsEnvironment:
    """Immutable snapshot of where and how the ilitools are installed.

    Attributes:
        model_repository_dir: Directory handed to --modeldir
        ilivalidator_path: Path to ilivalidator.jar (empty if not installed)
        ili2gpkg_path: Path to ili2gpkg.jar (empty if not installed)
        plugins_dir: Directory searched for ilivalidator plugin jars
        trace_enabled: Pass --trace to every invocation
        enable_gpkg_validation: Whether ili2gpkg may be used at all
        proxy: Proxy URL handed to --proxy/--proxyPort
    """

    model_repository_dir: str
    ilivalidator_path: str = ""
    ili2gpkg_path: str = ""
    plugins_dir: str | None = None
    trace_enabled: bool = False
    enable_gpkg_validation: bool = False
    proxy: str | None = None

    @property
    def is_ilivalidator_initialized(self) -> bool:
        return bool(self.ilivalidator_path)

    @property
    def is_ili2gpkg_initialized(self) -> bool:
        return self.enable_gpkg_validation and bool(self.ili2gpkg_path)

    @classmethod
    def from_settings(
        cls, settings: IlitoolsSettings, proxy_settings: ProxySettings | None = None
    ) -> "IlitoolsEnvironment":
        return cls(
            model_repository_dir=str(settings.model_repository_dir),
            ilivalidator_path=settings.ilivalidator_path,
            ili2gpkg_path=settings.ili2gpkg_path,
            plugins_dir=str(settings.plugins_dir),
            trace_enabled=settings.trace_enabled,
            enable_gpkg_validation=settings.enable_gpkg_validation,
            proxy=proxy_settings.proxy if proxy_settings else None,
        )

    def plugin_jars(self) -> list[Path]:
        """Plugin jars found directly in the plugins directory."""
        if not self.plugins_dir:
            return []
        plugins_dir = Path(self.plugins_dir)
        if not plugins_dir.is_dir():
            return []
        return sorted(p for p in plugins_dir.glob("*.jar") if p.is_file())
