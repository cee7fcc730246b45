from lineprof_explorer.tree import ProfilingNode, SourceRef


def node(label, ref=None, time=0.0, released=0.0, allocated=0.0, dups=0, children=()):
    return ProfilingNode(
        label=label,
        source_ref=SourceRef.parse(ref) if ref else None,
        time=time,
        memory_released=released,
        memory_allocated=allocated,
        duplications=dups,
        children=tuple(children)
    )
