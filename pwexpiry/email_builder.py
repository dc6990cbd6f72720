"""Build the HTML run-summary email sent to administrators."""

import html

from pwexpiry.models import NotificationOutcome, RunStatistics

_CELL_STYLE = "padding: 8px; border: 1px solid #ddd; font-family: Arial, sans-serif; font-size: 10pt;"
_CELL_STYLE_NOWRAP = "padding: 8px; border: 1px solid #ddd; font-family: Arial, sans-serif; font-size: 10pt; white-space: nowrap;"

_TABLE_HEADER = f"""\
<table style="border-collapse: collapse; width: 100%; max-width: 900px; font-family: Arial, sans-serif; font-size: 10pt;">
<thead>
  <tr>
    <th style="{_CELL_STYLE}">Konto</th>
    <th style="{_CELL_STYLE_NOWRAP}">Name</th>
    <th style="{_CELL_STYLE}">Email</th>
    <th style="{_CELL_STYLE}">Vorlage</th>
    <th style="{_CELL_STYLE}">Zielgruppe</th>
    <th style="{_CELL_STYLE}">Ablaufdatum</th>
    <th style="{_CELL_STYLE}">Status</th>
  </tr>
</thead>
<tbody>
"""

_ROW_TEMPLATE = f"""\
<tr>
  <td style="{_CELL_STYLE}"><strong>{{account}}</strong></td>
  <td style="{_CELL_STYLE_NOWRAP}">{{full_name}}</td>
  <td style="{_CELL_STYLE}">{{email}}</td>
  <td style="{_CELL_STYLE}">{{template}}</td>
  <td style="{_CELL_STYLE}">{{audience}}</td>
  <td style="{_CELL_STYLE_NOWRAP}">{{expires_on}}</td>
  <td style="{_CELL_STYLE}">{{status}}</td>
</tr>
"""

_TABLE_FOOTER = """\
</tbody>
</table>
"""


def build_summary_email(rows: list[NotificationOutcome], stats: RunStatistics, *, mode: str) -> str:
    """Build the admin summary: counters first, then one table row per notified account."""
    counters = "<br>\n".join(html.escape(line) for line in stats.summary_lines())
    body = f"<h2><span style='font-size: 12px;'>Kennwortablauf-Benachrichtigung ({html.escape(mode)})</span></h2>\n"
    body += f"<p style=\"font-family: monospace; font-size: 10pt;\">{counters}</p>\n"

    if not rows:
        body += "<p>Keine Benachrichtigungen versendet.</p>\n"
        return body

    body += _TABLE_HEADER
    for row in rows:
        body += _ROW_TEMPLATE.format(
            account=html.escape(row.sam_account_name),
            full_name=html.escape(row.display_name),
            email=html.escape(row.email),
            template=row.template.value if row.template else "",
            audience=row.audience.value if row.audience else "",
            expires_on=row.expires_on.strftime("%d.%m.%Y %H:%M") if row.expires_on else "",
            status=row.status.value,
        )
    body += _TABLE_FOOTER
    return body
