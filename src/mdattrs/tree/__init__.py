"""Static element-tree annotation: adapter, applier and section glue."""

from mdattrs.tree.adapter import (
    AttributeRejectedError,
    ElementKind,
    LxmlTreeAdapter,
    TreeAdapter,
)
from mdattrs.tree.applier import TargetBinding, TreeApplier, apply_annotations
from mdattrs.tree.postprocess import (
    SectionInfo,
    SectionLookup,
    SectionPostProcessor,
    SourceSectionLookup,
    render_html,
    split_sections,
)

__all__ = [
    "AttributeRejectedError",
    "ElementKind",
    "LxmlTreeAdapter",
    "SectionInfo",
    "SectionLookup",
    "SectionPostProcessor",
    "SourceSectionLookup",
    "TargetBinding",
    "TreeAdapter",
    "TreeApplier",
    "apply_annotations",
    "render_html",
    "split_sections",
]
