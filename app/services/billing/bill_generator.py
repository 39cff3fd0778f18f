"""
Generator rachunków PDF za prąd na podstawie obliczonego podziału.
"""

from pathlib import Path
from datetime import datetime
from typing import Optional
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_LEFT
from reportlab.pdfbase import pdfmetrics

from app.config import settings
from app.services.billing.tariff import calculate_energy_cost, consumption
from app.services.billing.types import BillCalculationResult, BillConfig, MeterReading, TariffConfig


def format_money(value: float) -> str:
    """Formatuje kwotę do wyświetlenia."""
    return f"{settings.currency_symbol} {value:,.2f}"


def format_usage(value: float) -> str:
    """Formatuje zużycie do wyświetlenia."""
    return f"{value:,.2f} kWh"


def _register_font() -> str:
    """Rejestruje czcionkę TTF jeśli jest dostępna, w przeciwnym razie Helvetica."""
    try:
        from reportlab.pdfbase.ttfonts import TTFont  # type: ignore
        import platform

        if platform.system() == 'Windows':
            font_paths = ['C:/Windows/Fonts/arial.ttf', 'C:/Windows/Fonts/Arial.ttf']
        else:
            font_paths = [
                '/usr/share/fonts/truetype/msttcorefonts/arial.ttf',
                '/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf',
            ]

        for font_path in font_paths:
            if not Path(font_path).exists():
                continue
            try:
                pdfmetrics.registerFont(TTFont('Arial', font_path))
            except Exception as e:
                print(f"[WARNING] Nie udało się zarejestrować czcionki {font_path}: {e}")
                continue
            if 'Arial' in pdfmetrics.getRegisteredFontNames():
                return 'Arial'

        print("[WARNING] Nie znaleziono czcionki Arial, używam Helvetica")
    except ImportError:
        print("[WARNING] Brak obsługi TTF, używam Helvetica")
    return 'Helvetica'


class HeaderDocTemplate(SimpleDocTemplate):
    """Dokument z datą wygenerowania na każdej stronie."""

    def __init__(self, font_name, *args, **kwargs):
        SimpleDocTemplate.__init__(self, *args, **kwargs)
        self.font_name = font_name

    def build(self, flowables, onFirstPage=None, onLaterPages=None):
        generated_text = f"Wygenerowano: {datetime.now().strftime('%d.%m.%Y %H:%M')}"
        font_name = self.font_name
        page_width, page_height = A4

        def add_header(canvas, doc):
            canvas.saveState()
            canvas.setFont(font_name, 9)
            text_width = canvas.stringWidth(generated_text, font_name, 9)
            canvas.drawString(page_width - 15*mm - text_width, page_height - 15*mm, generated_text)
            canvas.restoreState()

        return SimpleDocTemplate.build(self, flowables, onFirstPage=add_header, onLaterPages=add_header)


def _grid_style(font_name: str, header: bool = True) -> TableStyle:
    commands = [
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (-1, -1), font_name),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ('TOPPADDING', (0, 0), (-1, -1), 5),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ]
    if header:
        commands += [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ]
    return TableStyle(commands)


def bill_filename(config: BillConfig, bill_id: Optional[int] = None) -> str:
    """
    Nazwa pliku: electricity_bill_2025-01-31_bill_7.pdf dla zapisanego rachunku,
    electricity_bill_2025-01-31_draft.pdf dla szkicu.
    """
    stamp = config.date_generated or datetime.now().strftime('%Y-%m-%d')
    suffix = f"bill_{bill_id}" if bill_id is not None else "draft"
    return f"electricity_bill_{stamp}_{suffix}.pdf"


def generate_bill_pdf(
    config: BillConfig,
    main_meter: MeterReading,
    result: BillCalculationResult,
    tariff: TariffConfig,
    output_dir: Optional[str] = None,
    bill_id: Optional[int] = None
) -> str:
    """
    Generuje rachunek PDF z podziałem kosztów.

    Args:
        config: Konfiguracja rachunku
        main_meter: Odczyt licznika głównego
        result: Wynik obliczeń dla rachunku
        tariff: Taryfa użyta do obliczeń
        output_dir: Folder docelowy (domyślnie settings.bills_dir)
        bill_id: ID zapisanego rachunku (None - szkic)

    Returns:
        Ścieżka do wygenerowanego pliku PDF
    """
    bills_folder = Path(output_dir or settings.bills_dir)
    bills_folder.mkdir(parents=True, exist_ok=True)
    filepath = bills_folder / bill_filename(config, bill_id)

    font_name = _register_font()

    doc = HeaderDocTemplate(font_name, str(filepath), pagesize=A4,
                            leftMargin=15*mm, rightMargin=15*mm,
                            topMargin=25*mm, bottomMargin=15*mm)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'BillTitle',
        parent=styles['Heading5'],
        fontSize=12,
        textColor=colors.HexColor('#312e81'),
        spaceAfter=1*mm,
        alignment=TA_LEFT,
        fontName=font_name
    )
    heading_style = ParagraphStyle(
        'BillHeading',
        parent=styles['Heading3'],
        fontSize=11,
        textColor=colors.HexColor('#312e81'),
        spaceBefore=2*mm,
        spaceAfter=1*mm,
        fontName=font_name
    )

    story = []
    story.append(Paragraph("RACHUNEK ZA PRAD - PODZIAL", title_style))

    # Okres i licznik główny
    main_units = consumption(main_meter)
    details = [
        ['Okres rozliczeniowy:', config.month],
        ['Data wystawienia:', config.date_generated],
        ['Licznik glowny:', f"{main_meter.name} {main_meter.meter_no}".strip()],
        ['Odczyty:', f"{main_meter.previous:,.2f} -> {main_meter.current:,.2f}"],
        ['Zuzycie dom:', format_usage(main_units)],
        ['Zuzycie podlicznikow:', format_usage(result.total_units)],
        ['Straty:', format_usage(main_units - result.total_units)],
    ]
    details_table = Table(details, colWidths=[50*mm, 125*mm])
    details_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, -1), font_name),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ('TOPPADDING', (0, 0), (-1, -1), 0),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
    ]))
    story.append(details_table)
    story.append(Spacer(1, 3*mm))

    # Rachunek dostawcy
    story.append(Paragraph("RACHUNEK DOSTAWCY", heading_style))
    energy_cost_base = calculate_energy_cost(main_units, tariff.slabs)
    bkash_fee = tariff.bkash_charge if config.include_bkash_fee else 0.0

    summary = [
        ['Skladnik', 'Kwota'],
        ['Energia elektryczna:', format_money(energy_cost_base)],
        ['Oplata mocowa:', format_money(tariff.demand_charge)],
        ['Oplata za licznik:', format_money(tariff.meter_rent)],
        [f'VAT {tariff.vat_rate * 100:g}%:', format_money(result.vat_total)],
    ]
    if config.include_late_fee:
        summary.append(['Oplata za zwloke:', format_money(result.late_fee)])
    if config.include_bkash_fee:
        summary.append(['Oplata bKash:', format_money(bkash_fee)])
    summary.append(['RAZEM:', format_money(result.total_collection)])

    summary_table = Table(summary, colWidths=[100*mm, 75*mm])
    summary_style = _grid_style(font_name)
    summary_style.add('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey)
    summary_table.setStyle(summary_style)
    story.append(summary_table)
    story.append(Spacer(1, 5*mm))

    # Podział między najemców
    story.append(Paragraph("PODZIAL MIEDZY NAJEMCOW", heading_style))
    story.append(Paragraph(
        f"Stawka za kWh: {settings.currency_symbol} {result.calculated_rate:,.4f}",
        heading_style
    ))

    rows = [['Najemca', 'Zuzycie', 'Energia', 'Oplaty stale', 'Do zaplaty']]
    for calc in result.user_calculations:
        rows.append([
            calc.name or calc.id,
            format_usage(calc.units_used),
            format_money(calc.energy_cost),
            format_money(calc.fixed_cost),
            format_money(calc.total_payable),
        ])
    rows.append([
        'RAZEM:',
        format_usage(result.total_units),
        format_money(sum(calc.energy_cost for calc in result.user_calculations)),
        format_money(sum(calc.fixed_cost for calc in result.user_calculations)),
        format_money(sum(calc.total_payable for calc in result.user_calculations)),
    ])

    split_table = Table(rows, colWidths=[45*mm, 30*mm, 35*mm, 30*mm, 35*mm])
    split_style = _grid_style(font_name)
    split_style.add('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey)
    split_table.setStyle(split_style)
    story.append(split_table)

    doc.build(story)

    print(f"[OK] Wygenerowano rachunek PDF: {filepath}")
    return str(filepath)
