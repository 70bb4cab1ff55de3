# pdf_export.py
from fpdf import FPDF, XPos, YPos

from config import DAYS, MAX_SLOTS
from schedules import schedule_grid
from timegrid import slot_label

TIME_COL_WIDTH = 24
ROW_HEIGHT = 6


def _latin1(text):
    return text.encode('latin-1', 'replace').decode('latin-1')


def _rgb(color):
    color = (color or '#ffffff').lstrip('#')
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def export_schedule_pdf(schedule, days=DAYS, max_slots=MAX_SLOTS):
    pdf = FPDF(orientation='L', unit='mm', format='A4')
    pdf.set_auto_page_break(False)
    pdf.add_page()
    pdf.set_font('Helvetica', 'B', 12)
    pdf.cell(0, 8, _latin1(f'{schedule.type.value.capitalize()} schedule: {schedule.name}'),
             new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    day_width = (pdf.w - pdf.l_margin - pdf.r_margin - TIME_COL_WIDTH) / len(days)
    pdf.set_font('Helvetica', 'B', 7)
    pdf.cell(TIME_COL_WIDTH, ROW_HEIGHT, 'Time', border=1, align='C')
    for day in days:
        pdf.cell(day_width, ROW_HEIGHT, day, border=1, align='C')
    pdf.ln(ROW_HEIGHT)

    grid = schedule_grid(schedule, days, max_slots)
    pdf.set_font('Helvetica', '', 6)
    for slot in range(max_slots):
        pdf.cell(TIME_COL_WIDTH, ROW_HEIGHT, slot_label(slot), border=1, align='C')
        for day in days:
            tiles = grid[(day, slot)]
            text = ''
            # Label only the first slot of each tile
            starting = [t for t in tiles if t.slot_index == slot]
            if starting:
                t = starting[0]
                text = f'{t.course_name} {t.section}'.strip()
            if tiles:
                pdf.set_fill_color(*_rgb(tiles[0].color))
            pdf.cell(day_width, ROW_HEIGHT, _latin1(text)[:40], border=1, align='L', fill=bool(tiles))
        pdf.ln(ROW_HEIGHT)
    return bytes(pdf.output())
