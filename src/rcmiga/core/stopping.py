"""
Stopping criteria for the RCMIGA optimizer.
"""

from src.rcmiga.core.config import StoppingConfig
from src.rcmiga.core.state import RunState, StopCode


class StoppingCriteria:
    """
    Inspects the run history once per generation.

    Also maintains the stall counter: it resets when the best value strictly
    decreases, when the generation is infeasible, or when feasibility is
    newly gained, and grows by one otherwise.
    """

    def __init__(self, config: StoppingConfig, max_generations: int):
        self.config = config
        self.max_generations = max_generations

    def update_stall(self, state: RunState) -> None:
        gen = state.generation
        if gen == 0:
            return

        best, feasible = state.best, state.feasible
        improved = (
            best[gen] < best[gen - 1]
            or not feasible[gen]
            or (feasible[gen] and not feasible[gen - 1])
        )
        if improved:
            state.reset_stall()
        else:
            state.stall_generations += 1

    def evaluate(self, state: RunState, abort_requested: bool = False) -> StopCode:
        """Return the first matching stop code, or ``StopCode.CONTINUE``."""
        self.update_stall(state)

        gen = state.generation
        best, feasible = state.best, state.feasible
        config = self.config
        window_start = gen - (config.max_stall_generations - 2)

        if gen >= self.max_generations - 1:
            return StopCode.MAX_GENERATIONS
        if state.elapsed >= config.max_time:
            return StopCode.MAX_TIME
        if feasible[gen] and best[gen] <= config.fitness_limit:
            return StopCode.FITNESS_LIMIT
        if window_start > 0 and feasible[window_start] and feasible[gen] and \
           best[window_start] - best[gen] <= config.function_tolerance:
            return StopCode.FUNCTION_TOLERANCE
        if state.stall_generations >= config.max_stall_generations:
            return StopCode.STALL_GENERATIONS
        if state.stall_elapsed >= config.max_stall_time:
            return StopCode.STALL_TIME
        if abort_requested:
            return StopCode.USER_ABORT
        return StopCode.CONTINUE
