"""Routers package — HTTP endpoint definitions, all mounted under /api.

Files:
  auth.py        — register / login / logout / current user
  profile.py     — profile edits and IC verification      (MODULE_M01)
  company.py     — SSM verification and ownership         (MODULE_M01)
  account.py     — self-service deactivation              (MODULE_M01)
  audit.py       — audit log listings                     (MODULE_M01)
  catalog.py     — Module 4 license catalog passthrough   (MODULE_M02)
  permohonan.py  — application workflow and documents     (MODULE_M02)

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to osc_portal/services/.
"""
