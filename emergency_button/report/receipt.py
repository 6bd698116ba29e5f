"""
Receipt Renderer
Generates the human-readable ``receipt.adoc`` for an incident bundle.
"""

import logging
from typing import Any, Dict, List

from jinja2 import Environment, StrictUndefined

from emergency_button.config import AppConfig
from emergency_button.core.schema import IncidentManifest
from emergency_button.core.utils import format_size

logger = logging.getLogger(__name__)

LICENSE_ID = "AGPL-3.0-or-later"

RECEIPT_TEMPLATE = """\
= Emergency Receipt: {{ manifest.id }}
:toc:
:icons: font

This bundle was created by emergency-button {{ manifest.trigger.version }}.
{% if manifest.trigger.dry_run %}

NOTE: This was a dry run. No commands were executed and nothing was written to disk.
{% endif %}

== Summary

[cols="1,3", options="header"]
|===
|Field|Value
|Incident ID|{{ manifest.id | cell }}
|Created|{{ manifest.created_at | cell }}
|Hostname|{{ manifest.hostname | cell }}
|User|{{ manifest.username | cell }}
|Working Directory|{{ manifest.working_dir | cell }}
|Operating System|{{ manifest.platform.os | cell }}
|Architecture|{{ manifest.platform.arch | cell }}
|Kernel|{{ manifest.platform.kernel | cell }}
|Tool Version|{{ manifest.trigger.version | cell }}
|Dry Run|{{ "yes" if manifest.trigger.dry_run else "no" }}
|Bundle Path|{{ bundle_path | cell }}
|===

== Commands Executed

Exit code 0 means at least one command in the module produced output; 1 means none did.

[cols="2,1,1", options="header"]
|===
|Command|Exit Code|Output Size
{% for entry in manifest.commands %}
|{{ entry.name | cell }}|{{ entry.exit_code }}|{{ entry.output_len | filesize }}
{% endfor %}
|===

{{ succeeded }} of {{ manifest.commands | length }} modules produced output.

== Log Files

{% if log_files %}
{% for name in log_files %}
* `logs/{{ name }}`
{% endfor %}
{% else %}
No log files were written.
{% endif %}

== Next Steps

. Keep this directory intact; do not edit files inside it.
. Review the logs above, starting with any module whose exit code is 1.
. Attach `incident.json`, this receipt and the `logs/` directory when escalating.
. Re-run `emergency-button trigger` after remediation to capture a comparison bundle.

== License

emergency-button is free software licensed under the {{ license }}.
"""


def escape_cell(value: Any) -> str:
    """Make a value safe for an AsciiDoc table cell."""
    text = str(value)
    return text.replace("|", "\\|").replace("\n", " ")


class ReceiptRenderer:
    """Renders the incident receipt from the current manifest snapshot."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.env = Environment(
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
            undefined=StrictUndefined,
        )
        self.env.filters["cell"] = escape_cell
        self.env.filters["filesize"] = format_size
        self.template = self.env.from_string(RECEIPT_TEMPLATE)

    def context(self, incident, manifest: IncidentManifest) -> Dict[str, Any]:
        log_files: List[str] = incident.log_files()
        return {
            "manifest": manifest,
            "bundle_path": str(incident.path),
            "log_files": log_files,
            "succeeded": sum(1 for entry in manifest.commands if entry.exit_code == 0),
            "license": LICENSE_ID,
        }

    def render(self, incident, manifest: IncidentManifest) -> str:
        """Render the AsciiDoc receipt text."""
        text = self.template.render(**self.context(incident, manifest))
        logger.debug(f"Rendered receipt for {manifest.id}: {len(text)} chars")
        return text
