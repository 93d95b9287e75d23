"""Class attendance register.

Feature modules (students, attendance, users) each carry a model, a repository
protocol with its MySQL implementation, a service and a thin Flask controller.
"""
