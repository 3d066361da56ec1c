"""Migration planning, batch refactoring, checkpoints and progress."""

from nsmigrate.refactoring.change_tracker import ChangeTracker
from nsmigrate.refactoring.executor import BatchRefactoringExecutor
from nsmigrate.refactoring.planner import (
    MigrationPlanner,
    PlanningError,
    check_phase_order,
    determine_optimal_order,
)
from nsmigrate.refactoring.progress import ProgressTracker
from nsmigrate.refactoring.recipes import (
    RecipeLibrary,
    TextRecipeRunner,
    UnknownRecipeError,
)
from nsmigrate.refactoring.schemas import (
    MigrationPlan,
    RefactoringOptions,
    RefactoringPhase,
    RefactoringResult,
    RollbackResult,
    ValidationResult,
)
from nsmigrate.refactoring.validation import RefactoringValidator

__all__ = [
    "BatchRefactoringExecutor",
    "ChangeTracker",
    "MigrationPlan",
    "MigrationPlanner",
    "PlanningError",
    "ProgressTracker",
    "RecipeLibrary",
    "RefactoringOptions",
    "RefactoringPhase",
    "RefactoringResult",
    "RefactoringValidator",
    "RollbackResult",
    "TextRecipeRunner",
    "UnknownRecipeError",
    "ValidationResult",
    "check_phase_order",
    "determine_optimal_order",
]
