"""
Standard chart wrappers using Plotly.
"""
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots
import pandas as pd
from typing import List, Optional

from obra_dashboard.modeling.correlation import correlation_strength


# =============================================================================
# CHART THEME
# =============================================================================

CHART_COLORS = {
    "primary": "#3949ab",
    "secondary": "#17a2b8",
    "success": "#28a745",
    "warning": "#ffc107",
    "danger": "#dc3545",
    "neutral": "#6c757d",
}

CATEGORY_COLORS = {
    "OPERARIO": CHART_COLORS["success"],
    "OFICIAL": CHART_COLORS["secondary"],
    "PEON": CHART_COLORS["warning"],
}

CHART_TEMPLATE = "plotly_white"

DEFAULT_LAYOUT = {
    "template": CHART_TEMPLATE,
    "font": {"family": "Arial, sans-serif", "size": 12},
    "margin": {"l": 50, "r": 30, "t": 40, "b": 50},
    "hoverlabel": {"bgcolor": "white"},
}


def apply_layout(fig: go.Figure, **kwargs) -> go.Figure:
    """Apply standard layout to figure."""
    layout = {**DEFAULT_LAYOUT, **kwargs}
    fig.update_layout(**layout)
    return fig


def category_color(categoria: str) -> str:
    return CATEGORY_COLORS.get(categoria, CHART_COLORS["neutral"])


# =============================================================================
# LINE CHARTS
# =============================================================================

def trend_line(df: pd.DataFrame, x: str, y: str, title: str = "",
               y_title: str = "", forecast: Optional[pd.DataFrame] = None) -> go.Figure:
    """
    Line chart of a bucketed series, optionally continued by a dashed forecast.

    ``forecast`` needs ``label`` and ``valor`` columns.
    """
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=df[x], y=df[y], mode="lines+markers", name="Real",
        line={"color": CHART_COLORS["primary"]},
    ))

    if forecast is not None and len(forecast) > 0:
        fig.add_trace(go.Scatter(
            x=forecast["label"], y=forecast["valor"], mode="lines", name="Predicción",
            line={"color": CHART_COLORS["danger"], "dash": "dash"},
        ))

    fig.update_layout(title=title, yaxis_title=y_title)
    return apply_layout(fig)


# =============================================================================
# BAR CHARTS
# =============================================================================

def vertical_bar(df: pd.DataFrame, x: str, y: str, title: str = "",
                 y_title: str = "", color: str = "primary") -> go.Figure:
    fig = go.Figure(go.Bar(
        x=df[x], y=df[y],
        marker_color=CHART_COLORS.get(color, color),
    ))
    fig.update_layout(title=title, yaxis_title=y_title)
    return apply_layout(fig)


def horizontal_bar(df: pd.DataFrame, x: str, y: str,
                   title: str = "", text: Optional[str] = None) -> go.Figure:
    """
    Create horizontal bar chart, largest value on top.
    """
    fig = px.bar(df, x=x, y=y, orientation="h", title=title, text=text)
    fig.update_traces(textposition="outside", marker_color=CHART_COLORS["primary"])
    fig.update_layout(yaxis={"categoryorder": "total ascending"})
    return apply_layout(fig)


def category_bar(df: pd.DataFrame, value: str, title: str = "", y_title: str = "") -> go.Figure:
    """Bar per worker category, coloured by category."""
    fig = go.Figure(go.Bar(
        x=df["categoria"], y=df[value],
        marker_color=[category_color(c) for c in df["categoria"]],
    ))
    fig.update_layout(title=title, yaxis_title=y_title)
    return apply_layout(fig)


def grouped_bar(df: pd.DataFrame, x: str, y: List[str], names: Optional[List[str]] = None,
                title: str = "", barmode: str = "group") -> go.Figure:
    """
    Create grouped or stacked bar chart.
    """
    fig = go.Figure()
    colors = list(CHART_COLORS.values())
    names = names or y

    for i, col in enumerate(y):
        fig.add_trace(go.Bar(
            name=names[i],
            x=df[x],
            y=df[col],
            marker_color=colors[i % len(colors)],
        ))

    fig.update_layout(barmode=barmode, title=title)
    return apply_layout(fig)


def dual_axis_bar_line(df: pd.DataFrame, x: str, bar: str, line: str,
                       bar_name: str, line_name: str, title: str = "") -> go.Figure:
    """Bars on the primary axis, a line on the secondary axis."""
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(go.Bar(x=df[x], y=df[bar], name=bar_name,
                         marker_color=CHART_COLORS["primary"]), secondary_y=False)
    fig.add_trace(go.Scatter(x=df[x], y=df[line], name=line_name, mode="lines+markers",
                             line={"color": CHART_COLORS["success"]}), secondary_y=True)
    fig.update_yaxes(title_text=bar_name, secondary_y=False)
    fig.update_yaxes(title_text=line_name, secondary_y=True)
    fig.update_layout(title=title)
    return apply_layout(fig)


# =============================================================================
# DISTRIBUTION
# =============================================================================

def doughnut(df: pd.DataFrame, names: str, values: str, title: str = "") -> go.Figure:
    colors = [category_color(n) for n in df[names]] if names == "categoria" else None
    fig = go.Figure(go.Pie(
        labels=df[names], values=df[values], hole=0.5,
        marker={"colors": colors} if colors else None,
    ))
    fig.update_layout(title=title)
    return apply_layout(fig)


def correlation_bar(df: pd.DataFrame, title: str = "") -> go.Figure:
    """Signed correlation per variable pair, coloured by strength."""
    labels = [f"{a} vs {b}" for a, b in zip(df["var1"], df["var2"])]

    strength_colors = {
        "fuerte": CHART_COLORS["success"],
        "moderada": CHART_COLORS["warning"],
        "débil": CHART_COLORS["neutral"],
    }

    fig = go.Figure(go.Bar(
        x=df["correlation"], y=labels, orientation="h",
        marker_color=[strength_colors[correlation_strength(r)] for r in df["correlation"]],
    ))
    fig.update_layout(title=title, xaxis={"range": [-1, 1]}, yaxis={"autorange": "reversed"})
    return apply_layout(fig)
