from .dsl import sh, uses, needs, job_type, project_type, build, types, ProjectTypeBuilder
from .materialize import materialize_workflows
from .model import Job, JobType, JobTypeDependency, Project, ProjectIdentifier, ProjectType, Step, Workflow, WorkflowIdentifier
from .registry import TypeRegistry, load_types_file

__all__ = [
    "sh", "uses", "needs", "job_type", "project_type", "build", "types", "ProjectTypeBuilder",
    "materialize_workflows", "TypeRegistry", "load_types_file",
    "Job", "JobType", "JobTypeDependency", "Project", "ProjectIdentifier", "ProjectType", "Step", "Workflow", "WorkflowIdentifier",
]
