"""Partitioning of templates into same-kind segments."""

from collections.abc import Iterable

from docassembly.assembly.models import Segment, Template


def segment_templates(templates: Iterable[Template]) -> list[Segment]:
    """Split templates into maximal runs of the same kind.

    ``[text, text, pdf, text]`` becomes three segments of sizes 2, 1 and 1.
    Concatenating the segments' templates gives back the input unchanged.
    """
    segments: list[Segment] = []
    run: list[Template] = []

    for template in templates:
        if run and template.kind is not run[-1].kind:
            segments.append(Segment(kind=run[-1].kind, templates=tuple(run)))
            run = []
        run.append(template)

    if run:
        segments.append(Segment(kind=run[-1].kind, templates=tuple(run)))

    return segments
