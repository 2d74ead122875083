"""Extract course deadlines from syllabus documents and export them as iCalendar files."""

__version__ = "1.0.0"
