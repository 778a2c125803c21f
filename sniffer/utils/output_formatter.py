import csv
import io
import json
from typing import Iterable, List, Optional, TextIO

from ..models.exceptions import OutputException
from ..models.resource import MediaResource, count_by_type


class OutputFormatter:
    def __init__(self):
        self.supported_formats = ["tsv", "json", "jsonl", "csv"]

    def format_resource(self, resource: MediaResource, format_type: str = "tsv") -> str:
        format_type = format_type.lower()
        if format_type not in self.supported_formats:
            raise OutputException(f"Unsupported format: {format_type}", output_format=format_type)
        if format_type == "json":
            return json.dumps(resource.to_dict(), indent=2, ensure_ascii=False)
        if format_type == "jsonl":
            return resource.to_json()
        if format_type == "csv":
            return self._format_csv(resource)
        return resource.to_tsv()

    def _format_csv(self, resource: MediaResource) -> str:
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
        writer.writerow([
            resource.type.value,
            resource.size_or_zero,
            resource.width or 0,
            resource.height or 0,
            resource.url,
            resource.alt or "",
            resource.discovered_by or "",
        ])
        return output.getvalue().strip()

    def get_header(self, format_type: str = "tsv") -> str:
        format_type = format_type.lower()
        if format_type == "tsv":
            return MediaResource.get_tsv_header()
        if format_type == "csv":
            return "type,size,width,height,url,alt,strategy"
        return ""


class ResultSerializer:
    def __init__(self):
        self.formatter = OutputFormatter()

    def filter_resources(
        self, resources: Iterable[MediaResource], types: Optional[Iterable[str]] = None
    ) -> List[MediaResource]:
        wanted = {t.lower() for t in types} if types else None
        return [r for r in resources if wanted is None or r.type.value in wanted]

    def serialize_to_file(
        self,
        resources: List[MediaResource],
        output_file: TextIO,
        format_type: str = "tsv",
        include_header: bool = True,
        types: Optional[Iterable[str]] = None,
    ):
        filtered = self.filter_resources(resources, types)

        ft = format_type.lower()
        if ft == "json":
            json.dump([r.to_dict() for r in filtered], output_file, indent=2, ensure_ascii=False)
            output_file.write("\n")
            return

        if include_header and ft in ("tsv", "csv"):
            output_file.write(self.formatter.get_header(ft) + "\n")

        for r in filtered:
            output_file.write(self.formatter.format_resource(r, ft) + "\n")

    def create_summary(self, page_url: str, resources: List[MediaResource], duration: float = 0.0) -> str:
        counts = count_by_type(resources)
        total_bytes = sum(r.size_or_zero for r in resources)
        lines: List[str] = []
        lines.append("=" * 60)
        lines.append("MyNest Media Sniff Summary")
        lines.append("=" * 60)
        lines.append(f"Page: {page_url}")
        lines.append(f"Duration: {duration:.2f} seconds")
        lines.append(f"Resources: {len(resources)}")
        for media_type, count in counts.items():
            if count > 0:
                lines.append(f"  {media_type}: {count}")
        lines.append(f"Known size: {format_size(total_bytes)}")
        lines.append("=" * 60)
        return "\n".join(lines)


def format_size(num_bytes: Optional[int]) -> str:
    if not num_bytes or num_bytes <= 0:
        return "-"
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"

output_formatter = OutputFormatter()
result_serializer = ResultSerializer()
