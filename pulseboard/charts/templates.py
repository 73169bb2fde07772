from __future__ import annotations

import tempfile
from typing import Any

import numpy as np
import plotly.graph_objects as go
import plotly.io as pio

from pulseboard.categories import category_label
from pulseboard.currency import format_amount_minor
from pulseboard.db.models import CategorySpendPoint, RenewalBucketPoint, SpendTrendPoint

THEME: dict[str, Any] = {
    "colors": {
        "palette": [
            "#4C72B0",
            "#55A868",
            "#C44E52",
            "#8172B3",
            "#CCB974",
        ],
        "primary": "#4C72B0",
        "secondary": "#55A868",
        "trend_line": "#C44E52",
        "grid": "#E5E5E5",
        "background": "#FAFAFA",
        "text": "#2D3436",
    },
    "font": {
        "family": "Inter, sans-serif",
        "size": 13,
        "title_size": 16,
    },
    "size": {
        "width": 800,
        "height": 500,
        "scale": 2,
    },
    "margin": {"l": 60, "r": 30, "t": 60, "b": 50},
}

_custom_template = pio.templates["plotly_white"]
_custom_template.layout.font = dict(
    family=THEME["font"]["family"],
    size=THEME["font"]["size"],
    color=THEME["colors"]["text"],
)
_custom_template.layout.title = dict(
    font=dict(size=THEME["font"]["title_size"], color=THEME["colors"]["text"]),
    x=0.5,
    xanchor="center",
)
_custom_template.layout.plot_bgcolor = THEME["colors"]["background"]
_custom_template.layout.xaxis = dict(gridcolor=THEME["colors"]["grid"])
_custom_template.layout.yaxis = dict(gridcolor=THEME["colors"]["grid"])
pio.templates["pulseboard"] = _custom_template
pio.templates.default = "pulseboard"


def _base_layout() -> dict[str, Any]:
    return {
        "margin": THEME["margin"],
        "width": THEME["size"]["width"],
        "height": THEME["size"]["height"],
    }


def _save(fig: go.Figure) -> str:
    tmp = tempfile.NamedTemporaryFile(suffix=".png", delete=False)  # noqa: SIM115
    tmp.close()
    fig.write_image(tmp.name, scale=THEME["size"]["scale"])
    return tmp.name


def spend_trend_figure(points: list[SpendTrendPoint], cur: str = "USD") -> go.Figure | None:
    if not points or not any(p.amount_minor for p in points):
        return None

    months = [p.month_label for p in points]
    totals = [p.amount_minor / 100 for p in points]

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=months,
            y=totals,
            marker_color=THEME["colors"]["primary"],
            text=[format_amount_minor(p.amount_minor, cur) for p in points],
            textposition="outside",
            hovertemplate="%{x}: %{y:,.2f} " + cur + "<extra></extra>",
            name="Projected charges",
        )
    )

    if len(totals) >= 3:
        x_idx = list(range(len(totals)))
        z = np.polyfit(x_idx, totals, 1)
        trend = np.polyval(z, x_idx)
        fig.add_trace(
            go.Scatter(
                x=months,
                y=trend.tolist(),
                mode="lines",
                line=dict(color=THEME["colors"]["trend_line"], width=2, dash="dash"),
                name="Trend",
                hoverinfo="skip",
            )
        )

    fig.update_layout(
        **_base_layout(),
        title="Projected Spend",
        yaxis_title=cur,
        showlegend=len(totals) >= 3,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def category_spend_figure(points: list[CategorySpendPoint], cur: str = "USD") -> go.Figure | None:
    if not points:
        return None

    labels = [category_label(p.category) for p in points]
    values = [p.amount_minor / 100 for p in points]
    palette = THEME["colors"]["palette"]

    fig = go.Figure(
        go.Pie(
            labels=labels,
            values=values,
            marker=dict(colors=palette[: len(labels)]),
            textinfo="label+percent",
            texttemplate="%{label}<br>%{percent:.0%}",
            hovertemplate="%{label}: %{value:,.2f} " + cur + "/month<extra></extra>",
            hole=0.35,
            sort=False,
        )
    )
    fig.update_layout(**_base_layout(), title="Monthly Spend by Category", showlegend=False)
    fig.add_annotation(
        text=format_amount_minor(sum(p.amount_minor for p in points), cur),
        x=0.5,
        y=0.5,
        showarrow=False,
        font=dict(size=18, color=THEME["colors"]["text"]),
    )
    return fig


def renewal_buckets_figure(points: list[RenewalBucketPoint]) -> go.Figure | None:
    if not any(p.count for p in points):
        return None

    fig = go.Figure(
        go.Bar(
            x=[p.bucket_label for p in points],
            y=[p.count for p in points],
            marker_color=THEME["colors"]["secondary"],
            text=[str(p.count) for p in points],
            textposition="outside",
            hovertemplate="%{x}: %{y}<extra></extra>",
        )
    )
    fig.update_layout(**_base_layout(), title="Upcoming Renewals", yaxis_title="Subscriptions")
    fig.update_yaxes(dtick=1)
    return fig


async def spend_trend_chart(points: list[SpendTrendPoint], cur: str = "USD") -> str | None:
    fig = spend_trend_figure(points, cur)
    return _save(fig) if fig else None


async def category_spend_chart(points: list[CategorySpendPoint], cur: str = "USD") -> str | None:
    fig = category_spend_figure(points, cur)
    return _save(fig) if fig else None


async def renewal_buckets_chart(points: list[RenewalBucketPoint]) -> str | None:
    fig = renewal_buckets_figure(points)
    return _save(fig) if fig else None
