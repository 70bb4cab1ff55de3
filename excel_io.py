# excel_io.py
"""
Excel import of course tiles and Excel export of saved schedules.

Import reads the first sheet of a timetable workbook. The first two rows are
headers and the first column holds times; every other cell looks like

    8:00 - 9:30 "CYBER SECURITY" CS/ACT 201 J.DE GUZMAN
"""

import io
import logging
import math
import re

import pandas as pd

from config import DAYS, MAX_SLOTS
from errors import ValidationError
from schedules import schedule_grid
from tile_store import build_tile
from timegrid import slot_label

logger = logging.getLogger(__name__)

HEADER_ROWS = 2
TIME_RANGE = re.compile(r'^(\d{1,2}):?(\d{2})?\s*-\s*(\d{1,2}):?(\d{2})?')
QUOTED_NAME = re.compile(r'"([^"]+)"')
SECTION_START = re.compile(r'^[A-Z/]+\s+\d+')
TEACHER_NAME = re.compile(r'([A-Z])\.?\s*([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)')
KIND_MARKER = re.compile(r'\(LAB\)|\(LEC\)', re.IGNORECASE)
SHEET_NAME_INVALID = re.compile(r'[\[\]:*?/\\]')


def _strip_kind(text):
    return KIND_MARKER.sub('', text).strip()


def parse_cell(text):
    """Parse one timetable cell. Returns None for cells that hold no course."""
    if not isinstance(text, str):
        return None
    text = text.strip()
    if len(text) < 10:
        return None
    match = TIME_RANGE.match(text)
    if not match:
        return None

    start_hour, start_min = int(match.group(1)), int(match.group(2) or 0)
    end_hour, end_min = int(match.group(3)), int(match.group(4) or 0)
    # Times are written on a 12-hour clock without AM/PM
    if start_hour < 12 and start_hour < end_hour and end_hour >= 12:
        pass
    elif start_hour >= 12 and end_hour < 12:
        end_hour += 12
    elif start_hour < 12 and end_hour < 12 and start_hour > end_hour:
        end_hour += 12
    minutes = (end_hour * 60 + end_min) - (start_hour * 60 + start_min)
    duration = max(1, math.ceil(minutes / 30))

    info = text[match.end():].strip()
    course_name = ''
    quoted = QUOTED_NAME.search(info)
    if quoted:
        course_name = _strip_kind(quoted.group(1))
        info = info.replace(quoted.group(0), '').strip()

    parts = info.split()
    section, teacher = '', ''
    section_index = next((i for i in range(len(parts))
                          if SECTION_START.match(parts[i] + ' ' + (parts[i + 1] if i + 1 < len(parts) else ''))),
                         -1)
    if 0 <= section_index < len(parts) - 1:
        section = f'{parts[section_index]} {parts[section_index + 1]}'
        teacher_raw = _strip_kind(' '.join(parts[section_index + 2:]))
        name = TEACHER_NAME.search(teacher_raw)
        teacher = f'{name.group(1)}. {name.group(2)}' if name else teacher_raw

    if not course_name and section_index > 0:
        course_name = _strip_kind(' '.join(parts[:section_index]))
    if not course_name and parts:
        course_name = _strip_kind(' '.join(parts))
    if not course_name:
        return None

    return {
        'course_name': course_name,
        'section': section,
        'teacher': teacher,
        'start_time': f'{start_hour:02d}:{start_min:02d}',
        'duration': duration,
    }


def tiles_from_frame(frame):
    """Build de-duplicated sidebar tiles from a sheet read with header=None."""
    courses = {}
    for row_index, row in enumerate(frame.itertuples(index=False)):
        if row_index < HEADER_ROWS:
            continue
        for col_index, cell in enumerate(row):
            if col_index == 0:
                continue
            parsed = parse_cell(cell)
            if parsed is None:
                continue
            key = (parsed['course_name'], parsed['section'], parsed['teacher'])
            if key in courses:
                continue
            courses[key] = build_tile(
                course_name=parsed['course_name'],
                section=parsed['section'],
                teacher=parsed['teacher'],
                duration_minutes=parsed['duration'] * 30,
                start_time=parsed['start_time'],
            )
    return list(courses.values())


def import_workbook(file):
    try:
        frame = pd.read_excel(file, sheet_name=0, header=None, dtype=object)
    except (ValueError, OSError) as e:
        raise ValidationError(f'Failed to parse Excel file. Please check the format. ({e})')
    tiles = tiles_from_frame(frame)
    logger.info('Loaded %d courses from Excel file', len(tiles))
    return tiles


# --- EXPORT ---
def _cell_text(tiles, schedule_type):
    lines = []
    for t in tiles:
        text = f'{t.course_name}\n{t.section}\n{t.teacher}'
        if schedule_type != 'room':
            text += f'\n{t.room}'
        lines.append(text)
    return '\n\n'.join(lines)


def schedule_frame(schedule, days=DAYS, max_slots=MAX_SLOTS):
    grid = schedule_grid(schedule, days, max_slots)
    data = {day: [_cell_text(grid[(day, slot)], schedule.type.value) for slot in range(max_slots)]
            for day in days}
    return pd.DataFrame(data, index=[slot_label(s) for s in range(max_slots)])


def export_schedule_excel(schedule):
    output = io.BytesIO()
    sheet_name = SHEET_NAME_INVALID.sub('-', schedule.name)[:31] or 'Schedule'
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        schedule_frame(schedule).to_excel(writer, sheet_name=sheet_name, index_label='Time')
    output.seek(0)
    return output
