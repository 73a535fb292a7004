"""Subtitle utilities - SRT export of the timeline's caption track"""

import re
from pathlib import Path
from typing import Iterable, List, Union

from models.subtitle import SubtitleEntry
from utils.logger import logger

# 00:00:01,000 --> 00:00:03,500
TIMESTAMP_PATTERN = re.compile(
    r'(\d{2,}:\d{2}:\d{2},\d{3})\s*-->\s*(\d{2,}:\d{2}:\d{2},\d{3})'
)


class SubtitleUtils:
    """SRT formatting for subtitles burned in by the render service"""

    @staticmethod
    def ms_to_srt_time(ms: int) -> str:
        """Format milliseconds to SRT timestamp (HH:MM:SS,mmm)"""
        ms = max(int(ms), 0)
        hours, ms = divmod(ms, 3_600_000)
        minutes, ms = divmod(ms, 60_000)
        seconds, ms = divmod(ms, 1000)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d},{ms:03d}"

    @staticmethod
    def srt_time_to_ms(time_str: str) -> int:
        """Parse SRT timestamp (HH:MM:SS,mmm) to milliseconds"""
        clock, millis = time_str.strip().split(',')
        hours, minutes, seconds = (int(part) for part in clock.split(':'))
        return ((hours * 60 + minutes) * 60 + seconds) * 1000 + int(millis)

    @staticmethod
    def create_srt(entries: Iterable[SubtitleEntry]) -> str:
        """
        Render entries as SRT text.

        Entries are numbered from 1 in start order; blocks are separated
        by a blank line.
        """
        blocks = []
        ordered = sorted(entries, key=lambda e: (e.start_ms, e.end_ms))
        for number, entry in enumerate(ordered, start=1):
            blocks.append(
                f"{number}\n"
                f"{SubtitleUtils.ms_to_srt_time(entry.start_ms)} --> "
                f"{SubtitleUtils.ms_to_srt_time(entry.end_ms)}\n"
                f"{entry.text}\n"
            )
        return "\n".join(blocks)

    @staticmethod
    def parse_srt(content: str) -> List[SubtitleEntry]:
        """Read SRT text back into entries; malformed blocks are skipped"""
        entries = []
        for block in re.split(r'\n\s*\n', content.strip()):
            lines = block.strip().splitlines()
            for i, line in enumerate(lines):
                match = TIMESTAMP_PATTERN.search(line)
                if match:
                    entries.append(SubtitleEntry(
                        start_ms=SubtitleUtils.srt_time_to_ms(match.group(1)),
                        end_ms=SubtitleUtils.srt_time_to_ms(match.group(2)),
                        text="\n".join(lines[i + 1:]),
                    ))
                    break
            else:
                if block.strip():
                    logger.warning(f"Skipping malformed SRT block: {block[:40]!r}")
        return entries

    @staticmethod
    def write_srt(entries: Iterable[SubtitleEntry], path: Union[str, Path]) -> Path:
        """Write entries to an SRT file, creating parent directories"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(SubtitleUtils.create_srt(entries), encoding='utf-8')
        logger.debug(f"Wrote subtitles to {path}")
        return path
