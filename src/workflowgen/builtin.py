# builtin.py
# Project types used when a repository ships no workflowgen_types.py.
from __future__ import annotations

from typing import List

from .dsl import build, job_type, needs, sh, uses
from .model import ProjectType

TERRAFORM_ENV = {
    "AWS_ACCESS_KEY_ID": "${{ secrets.TERRAFORM_AWS_ACCESS_KEY_ID }}",
    "AWS_SECRET_ACCESS_KEY": "${{ secrets.TERRAFORM_AWS_SECRET_ACCESS_KEY }}",
}


def golang() -> ProjectType:
    # `go test {{ path }}/...` would search GOPATH instead of the module, so cd first
    test = job_type(
        "test",
        uses("actions/checkout@v2"),
        uses("actions/setup-go@v2"),
        sh("Test", "cd {{ path }} && go test -v ./..."),
    )
    lint = job_type(
        "lint",
        uses("actions/checkout@v2"),
        uses("actions/setup-go@v2"),
        sh("Vet", "cd {{ path }} && go vet ./..."),
        sh("Format check", 'test -z "$(gofmt -l {{ path }})"'),
    )
    return build("golang").on_pull_request(test, lint).on_merge(test).build()


def lambda_(source: ProjectType) -> ProjectType:
    package = job_type(
        "package",
        uses("actions/checkout@v2"),
        uses("actions/setup-go@v2"),
        sh("Build", "cd {{ path }} && GOOS=linux GOARCH=amd64 go build -o bootstrap ."),
        sh("Package", "cd {{ path }} && zip {{ name }}.zip bootstrap"),
        needs=[needs("source", 0)],
    )
    deploy = job_type(
        "deploy",
        uses("actions/checkout@v2"),
        uses("actions/setup-go@v2"),
        sh("Build", "cd {{ path }} && GOOS=linux GOARCH=amd64 go build -o bootstrap ."),
        sh("Package", "cd {{ path }} && zip {{ name }}.zip bootstrap"),
        sh(
            "Deploy",
            "aws lambda update-function-code --function-name {{ name }} --zip-file fileb://{{ path }}/{{ name }}.zip",
            env={
                "AWS_ACCESS_KEY_ID": "${{ secrets.LAMBDA_AWS_ACCESS_KEY_ID }}",
                "AWS_SECRET_ACCESS_KEY": "${{ secrets.LAMBDA_AWS_SECRET_ACCESS_KEY }}",
            },
        ),
        needs=[needs("source", 0)],
    )
    return build("lambda").depends_on("source", source).on_pull_request(package).on_merge(deploy).build()


def terraform() -> ProjectType:
    setup = [
        uses("actions/checkout@v2", name="Checkout"),
        uses("hashicorp/setup-terraform@v1", name="Terraform setup"),
        sh("Terraform init", "terraform -chdir={{ path }} init", env=TERRAFORM_ENV),
    ]
    plan = job_type(
        "plan",
        sh("Terraform plan", "terraform -chdir={{ path }} plan", env=TERRAFORM_ENV),
        steps_list=setup,
    )
    apply = job_type(
        "apply",
        sh("Terraform apply", "terraform -chdir={{ path }} apply -auto-approve", env=TERRAFORM_ENV),
        steps_list=setup,
    )
    return build("terraform").on_pull_request(plan).on_merge(apply).build()


def project_types() -> List[ProjectType]:
    go = golang()
    return [go, lambda_(go), terraform()]


STATIC_FILES = {
    "generate-workflows-check.yaml": """\
name: Generate workflows check

on:
  pull_request:
    branches: [ master ]

jobs:
  generate-workflows-check:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v2
      - uses: actions/setup-python@v4
      - name: Install workflowgen
        run: pip install workflowgen
      - name: Check generated workflows
        run: workflowgen check
""",
}
