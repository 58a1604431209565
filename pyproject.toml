[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xmlstar"
version = "1.0.0"
description = "Command line tools to list, format, convert, query, transform and validate XML documents"
requires-python = ">=3.10"
dependencies = [
    "lxml",
]
keywords = ["xml", "xslt", "xpath", "pyx", "validation", "dtd", "xsd", "relaxng", "command-line"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: Markup :: XML",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
xmlstar-ls = "xmlstar.ls:main"
xmlstar-format = "xmlstar.formatter:main"
xmlstar-pyx = "xmlstar.pyx:main"
xmlstar-tr = "xmlstar.trans:main"
xmlstar-sel = "xmlstar.select:main"
xmlstar-val = "xmlstar.validate:main"

[tool.hatch.build.targets.wheel]
packages = ["xmlstar"]

[tool.pytest.ini_options]
addopts = "-ra"
