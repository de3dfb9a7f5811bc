import io
import logging
from datetime import datetime, timezone

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image

from config import APP_NAME
from csat.services.dashboard_service import histogram_labels

logger = logging.getLogger(__name__)


def _png(fig):
    buf = io.BytesIO()
    fig.savefig(buf, format='png', bbox_inches='tight', dpi=200)
    plt.close(fig)
    buf.seek(0)
    return buf


def create_trend_graph(series):
    """
    Line chart of overall / onboard / ashore scores per submission.
    """
    dates = [datetime.fromtimestamp(p['t'] / 1000, tz=timezone.utc) for p in series]

    fig, ax = plt.subplots(figsize=(10, 3.5))
    ax.plot(dates, [p['overall'] for p in series], label='Overall', color='#0f172a', linewidth=2)
    ax.plot(dates, [p['onboard'] for p in series], label='Onboard', color='#2563eb', linewidth=1)
    ax.plot(dates, [p['ashore'] for p in series], label='Ashore', color='#16a34a', linewidth=1)

    ax.set_ylim(0, 100)
    ax.set_ylabel('%')
    ax.grid(True, axis='y', linestyle='--', alpha=0.7)
    ax.legend(loc='lower left', fontsize=8)
    fig.autofmt_xdate()
    plt.tight_layout()
    return _png(fig)


def create_service_area_graph(service_areas):
    """
    Bar graph of the mean percent per service area.
    """
    names = [a['serviceArea'] for a in service_areas]
    values = [a['percent'] for a in service_areas]
    bar_colors = ['#2563eb' if a['section'] == 'ONBOARD' else '#16a34a' for a in service_areas]

    fig, ax = plt.subplots(figsize=(10, 4))
    bars = ax.bar(range(len(names)), values, color=bar_colors)
    ax.set_xticks(range(len(names)))
    ax.set_xticklabels(names, rotation=30, ha='right', fontsize=8)
    ax.set_ylim(0, 100)

    # Add value labels on top of each bar
    for bar, value in zip(bars, values):
        ax.text(bar.get_x() + bar.get_width() / 2.0, bar.get_height(),
                f'{value:.1f}', ha='center', va='bottom', fontsize=8)

    ax.grid(True, axis='y', linestyle='--', alpha=0.7)
    plt.tight_layout()
    return _png(fig)


class FooterCanvas:
    def __init__(self, canvas, doc, generated_at):
        self.canvas = canvas
        self.doc = doc
        self.generated_at = generated_at

    def draw_footer(self):
        self.canvas.saveState()
        self.canvas.setFont("Helvetica", 7)
        self.canvas.setFillColor(colors.gray)
        self.canvas.drawString(25, 20, f"Generated {self.generated_at:%d %b %Y %H:%M} UTC")
        self.canvas.drawCentredString(self.doc.pagesize[0] / 2, 20, APP_NAME)
        page = f"Page {self.doc.page}"
        width = self.canvas.stringWidth(page, "Helvetica", 7)
        self.canvas.drawString(self.doc.pagesize[0] - width - 25, 20, page)
        self.canvas.restoreState()


def _table(rows, header_background=colors.grey):
    table = Table(rows)
    table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ('ALIGN', (0, 0), (0, -1), 'LEFT'),
        ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
        ('BACKGROUND', (0, 0), (-1, 0), header_background),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('TOPPADDING', (0, 0), (-1, -1), 2),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
    ]))
    return table


def generate_dashboard_report(summary, series, generated_at=None):
    """Render the dashboard KPIs and charts to a PDF; returns a BytesIO."""
    generated_at = generated_at or datetime.now(timezone.utc)
    buf = io.BytesIO()

    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        rightMargin=20,
        leftMargin=20,
        topMargin=20,
        bottomMargin=40,
        title=f"{APP_NAME} dashboard",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('CustomTitle', parent=styles['Heading1'], fontSize=14, alignment=1, spaceAfter=4)
    heading_style = ParagraphStyle('Section', parent=styles['Heading2'], fontSize=10, spaceBefore=6, spaceAfter=3)
    info_style = ParagraphStyle('InfoStyle', parent=styles['Normal'], fontSize=9, alignment=1, spaceAfter=4)

    elements = [
        Paragraph(f"{APP_NAME} - Customer Satisfaction Dashboard", title_style),
        Paragraph(f"Submissions: {summary['count']}", info_style),
        Spacer(1, 4),
    ]

    average = summary['average']
    elements.append(Paragraph("Key figures", heading_style))
    elements.append(_table([
        ['Metric', 'Value'],
        ['Average overall', f"{average['overall']:.2f}%"],
        ['Average onboard', f"{average['onboard']:.2f}%"],
        ['Average ashore', f"{average['ashore']:.2f}%"],
        ['Best overall', f"{summary['best']:.2f}%"],
        ['Worst overall', f"{summary['worst']:.2f}%"],
    ]))

    elements.append(Paragraph("Distribution of overall scores", heading_style))
    distribution = summary['distribution']
    elements.append(_table([list(distribution.keys()), [str(v) for v in distribution.values()]]))

    elements.append(Paragraph("Overall score histogram", heading_style))
    elements.append(_table([histogram_labels(), [str(v) for v in summary['histogram']]]))

    if len(series) >= 2:
        elements.append(Paragraph("Trend", heading_style))
        img = Image(create_trend_graph(series))
        img.drawWidth = A4[0] - 50
        img.drawHeight = 2.3 * inch
        elements.append(img)

    if summary['serviceAreas']:
        elements.append(Paragraph("Service areas", heading_style))
        img = Image(create_service_area_graph(summary['serviceAreas']))
        img.drawWidth = A4[0] - 50
        img.drawHeight = 2.6 * inch
        elements.append(img)
        elements.append(Spacer(1, 4))
        elements.append(_table(
            [['Service area', 'Section', 'Responses', 'Average']] + [
                [a['serviceArea'], a['section'], str(a['responses']), f"{a['percent']:.2f}%"]
                for a in summary['serviceAreas']
            ]
        ))

    def footer_func(canvas, doc):
        FooterCanvas(canvas, doc, generated_at).draw_footer()

    try:
        doc.build(elements, onFirstPage=footer_func, onLaterPages=footer_func)
    except Exception as e:
        logger.error(f"PDF generation failed: {str(e)}")
        raise

    buf.seek(0)
    logger.info(f"Dashboard report generated ({summary['count']} submissions)")
    return buf
