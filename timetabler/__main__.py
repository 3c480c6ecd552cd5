"""
Entry point for running timetabler as a module.

Usage:
    python -m timetabler generate school.json -o teaching.json
    python -m timetabler exams teaching.json --input school.json
    python -m timetabler validate school.json
    python -m timetabler view teaching.json --teacher t1
    python -m timetabler metrics teaching.json
    python -m timetabler sample -o school.json
"""

from timetabler.cli import main

if __name__ == "__main__":
    main()
