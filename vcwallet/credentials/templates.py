from typing import List

from vcwallet.models import CredentialTemplate, FieldConfig

# Built-in credential kinds offered to clients that render an issue form.
CREDENTIAL_TEMPLATES: List[CredentialTemplate] = [
    CredentialTemplate(
        type="GymMembership",
        label="Gym Membership",
        fields=[
            FieldConfig(name="memberName", label="Member Name", type="text", placeholder="John Doe", required=True),
            FieldConfig(
                name="membershipType",
                label="Membership Type",
                type="select",
                options=["Basic", "Standard", "Premium", "VIP", "Family"],
                required=True,
            ),
            FieldConfig(name="validUntil", label="Valid Until", type="date", required=True),
        ],
    ),
    CredentialTemplate(
        type="EmployeeID",
        label="Employee ID",
        fields=[
            FieldConfig(name="employeeName", label="Employee Name", type="text", placeholder="Jane Smith", required=True),
            FieldConfig(
                name="department",
                label="Department",
                type="select",
                options=[
                    "Engineering", "Product", "Design", "Marketing", "Sales",
                    "HR", "Finance", "Operations", "Legal", "Customer Support",
                ],
                required=True,
            ),
            FieldConfig(name="employeeId", label="Employee ID", type="text", placeholder="EMP-001", required=True),
            FieldConfig(name="startDate", label="Start Date", type="date", required=True),
        ],
    ),
    CredentialTemplate(
        type="Certificate",
        label="Certificate",
        fields=[
            FieldConfig(name="holderName", label="Holder Name", type="text", placeholder="John Doe", required=True),
            FieldConfig(
                name="courseName",
                label="Course Name",
                type="select",
                options=[
                    "Web Development Bootcamp", "Data Science Fundamentals", "Cloud Architecture",
                    "Cybersecurity Essentials", "Project Management Professional", "Agile Scrum Master",
                    "Machine Learning Basics", "Blockchain Development", "Other",
                ],
                required=True,
            ),
            FieldConfig(
                name="grade",
                label="Grade",
                type="select",
                options=["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "Pass"],
                required=True,
            ),
            FieldConfig(name="completionDate", label="Completion Date", type="date", required=True),
        ],
    ),
    CredentialTemplate(type="Custom", label="Custom Credential", fields=[]),
]
