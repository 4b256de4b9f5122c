"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy form loading and centralized result
emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from formlogic.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from formlogic.config.settings import FormLogicSettings
    from formlogic.infrastructure.store import FormStore
    from formlogic.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The fields and rules
    documents are read on first use so ``--help`` and ``--version`` never
    touch the filesystem.
    """

    def __init__(self, settings: FormLogicSettings) -> None:
        self.settings = settings
        self._store: FormStore | None = None
        self._raw_rules: list[Any] = []
        self._rules_loaded = False
        self._output = OutputSettings(
            json_output=settings.json_output,
            quiet=settings.quiet,
            verbose=settings.verbose,
        )

        from formlogic.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            quiet=settings.quiet,
        )

        if settings.verbose:
            from formlogic.services.telemetry import enable_telemetry

            enable_telemetry()

    def open_form(self) -> FormStore:
        """The form store with fields loaded and rules not yet validated."""
        if self._store is None:
            from formlogic.infrastructure.filesystem import DocumentError
            from formlogic.infrastructure.store import FormStore

            try:
                self._store, self._raw_rules = FormStore.from_settings(self.settings)
            except DocumentError as exc:
                raise click.ClickException(str(exc)) from exc
        return self._store

    @property
    def raw_rules(self) -> list[Any]:
        """The rules document as read from disk, before validation."""
        self.open_form()
        return self._raw_rules

    @property
    def store(self) -> FormStore:
        """The form store with the rules document loaded (created lazily).

        Raises:
            click.ClickException: If a document is unreadable or any rule
                in the rules document is invalid.
        """
        store = self.open_form()
        if not self._rules_loaded:
            from formlogic.services.rules import RuleService

            result = RuleService(store).load(self._raw_rules)
            if not result.ok:
                err = result.error
                lines = [f"{self.settings.rules_file}: {err.message if err else 'invalid'}"]
                lines.extend((err.detail or {}).get("errors", []) if err else [])
                raise click.ClickException("\n  ".join(lines))
            self._rules_loaded = True
        return store

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and set the exit status.

        Success goes to stdout and returns. In human mode each warning
        follows on stderr as ``WARNING: ...``; JSON already carries them
        in the payload and ``--quiet`` drops them. Failure goes to stderr
        and exits 1.
        """
        output = format_result(result, settings=self._output)
        if not result.ok:
            click.echo(output, err=True)
            raise SystemExit(1)
        click.echo(output)
        if self._output.json_output or self._output.quiet:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
