"""
The physics bottle: everything one likelihood evaluation needs.
"""

from ..exceptions import ConfigurationError


class PhysicsBottle:
    """
    Joint-likelihood container of (PDF, DataSet) results, constraints and parameters.

    The bottle works on its own copy of the parameter set so that a fit never
    moves the caller's values. `finalise` must be called after all results and
    constraints are added and before the bottle is given to a fit function.

    Parameters
    ----------
    parameter_set : ParameterSet
        Parameters of the fit (copied)
    """

    def __init__(self, parameter_set):
        self.parameter_set = parameter_set.copy()
        self.initial_values = {param.name: param.get_blinded_value() for param in self.parameter_set}
        self._pdfs = []
        self._data_sets = []
        self._constraints = []
        self.finalised = False

    def add_result(self, pdf, data_set):
        if self.finalised:
            raise ConfigurationError("Cannot add results to a finalised PhysicsBottle")
        self._pdfs.append(pdf)
        self._data_sets.append(data_set)

    def add_constraint(self, constraint_function):
        if self.finalised:
            raise ConfigurationError("Cannot add constraints to a finalised PhysicsBottle")
        self._constraints.append(constraint_function)

    def finalise(self):
        """
        Check the content and push the parameters into every PDF.

        Raises
        ------
        ConfigurationError
            If the numbers of PDFs and DataSets differ or either is missing
        """
        if len(self._pdfs) != len(self._data_sets):
            raise ConfigurationError(f"Mismatched number of PDFs ({len(self._pdfs)}) "
                                     f"and DataSets ({len(self._data_sets)})")
        for index, (pdf, data_set) in enumerate(zip(self._pdfs, self._data_sets)):
            if pdf is None or data_set is None:
                raise ConfigurationError(f"Result {index} has no PDF or no DataSet")
        self.set_parameter_set(self.parameter_set)
        self.finalised = True

    def get_results(self):
        return list(zip(self._pdfs, self._data_sets))

    def get_constraints(self):
        return list(self._constraints)

    def get_parameter_set(self):
        return self.parameter_set

    def set_parameter_set(self, parameter_set):
        """Make `parameter_set` the bottle parameters and update every PDF."""
        self.parameter_set = parameter_set
        for pdf in self._pdfs:
            pdf.set_physics_parameters(parameter_set)

    def number_results(self):
        return len(self._pdfs)
