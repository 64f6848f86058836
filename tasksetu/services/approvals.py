from tasksetu.models.enums import ApprovalMode, ApprovalStatus

def resolve_approval(mode: ApprovalMode, decisions: list[ApprovalStatus | None]) -> ApprovalStatus:
    """Overall status of an approval task from each approver's decision (None = undecided)."""
    total = len(decisions)
    approved = sum(1 for d in decisions if d == ApprovalStatus.approved)
    rejected = sum(1 for d in decisions if d == ApprovalStatus.rejected)

    if total == 0:
        return ApprovalStatus.pending

    if mode == ApprovalMode.any:
        if approved > 0:
            return ApprovalStatus.approved
        if rejected == total:
            return ApprovalStatus.rejected
        return ApprovalStatus.pending

    if mode == ApprovalMode.all:
        if rejected > 0:
            return ApprovalStatus.rejected
        if approved == total:
            return ApprovalStatus.approved
        return ApprovalStatus.pending

    # majority
    if approved * 2 > total:
        return ApprovalStatus.approved
    if rejected * 2 > total:
        return ApprovalStatus.rejected
    return ApprovalStatus.pending
