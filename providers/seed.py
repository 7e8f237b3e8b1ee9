# providers/seed.py
# Demo dataset loaded into an empty store. Passwords are plaintext here and
# hashed by the store on the way in.
DEMO_PASSWORD = "123"

SEED_DATA = {
    "users": [
        {"id": "u1", "name": "An Nguyen", "email": "an.nguyen@school.edu", "username": "gv.an",
         "role": "TEACHER", "avatar": "https://picsum.photos/200"},
        {"id": "u2", "name": "Binh Tran", "email": "binh.tran@school.edu", "username": "hs.binh",
         "role": "STUDENT", "classId": "c1", "dob": "2010-05-15", "parentPhone": "0912345678"},
        {"id": "u3", "name": "Cuong Le", "email": "cuong.le@school.edu", "username": "hs.cuong",
         "role": "STUDENT", "classId": "c1", "dob": "2010-08-20", "parentPhone": "0987654321"},
        {"id": "u4", "name": "Minh Pham", "email": "minh.pham@school.edu", "username": "hs.minh",
         "role": "STUDENT", "classId": "c2", "dob": "2010-02-10", "parentPhone": "0909090909"},
    ],
    "classes": [
        {"id": "c1", "name": "7A1", "teacherId": "u1", "studentCount": 2, "schoolYear": "2023-2024",
         "homeroomTeacher": "An Nguyen", "joinCode": "ABC1234"},
        {"id": "c2", "name": "7A2", "teacherId": "u1", "studentCount": 1, "schoolYear": "2023-2024",
         "homeroomTeacher": "Lan Tran", "joinCode": "XYZ9876"},
    ],
    "subjects": [
        {"id": "s1", "name": "Informatics 7", "description": "Connecting knowledge with life"},
    ],
    "topics": [
        {"id": "t1", "subjectId": "s1", "title": "Topic 1: Computers and the community", "order": 1},
        {"id": "t2", "subjectId": "s1", "title": "Topic 2: Storing, finding and exchanging information", "order": 2},
        {"id": "t3", "subjectId": "s1", "title": "Topic 4: Office applications", "order": 3},
    ],
    "lessons": [
        {"id": "l1", "topicId": "t1", "title": "Lesson 1: Input and output devices", "order": 1,
         "content": "The basic input and output devices...", "status": "PUBLISHED",
         "documentUrl": "https://example.com/doc1.pdf"},
        {"id": "l2", "topicId": "t1", "title": "Lesson 2: Computer software", "order": 2,
         "content": "System software and application software...", "status": "PUBLISHED"},
        {"id": "l3", "topicId": "t2", "title": "Lesson 4: Social networks", "order": 1,
         "content": "Social networks and online etiquette...", "status": "DRAFT"},
        {"id": "l4", "topicId": "t3", "title": "Lesson 7: Spreadsheets", "order": 1,
         "content": "Entering data into a spreadsheet...", "status": "PUBLISHED"},
    ],
    "assignments": [
        {"id": "a1", "lessonId": "l1", "title": "Input and output devices",
         "description": "List five input devices and five output devices.", "dueDate": "2023-12-31",
         "maxScore": 10, "type": "ESSAY", "rubric": "One point per correct device"},
        {"id": "a2", "lessonId": "l4", "title": "Build a grade sheet",
         "description": "Build your class grade sheet and use AVERAGE.", "dueDate": "2023-12-31",
         "maxScore": 10, "type": "FILE", "rubric": "Layout 2, formulas 5, complete data 3"},
    ],
    "submissions": [
        {"id": "sub1", "assignmentId": "a1", "studentId": "u2", "content": "Input: mouse, keyboard, mic...",
         "submittedAt": "2023-10-10", "grade": 9, "feedback": "Well done"},
    ],
    "announcements": [
        {"id": "ann1", "classId": "c1", "teacherId": "u1", "title": "Quiz schedule",
         "content": "Review lessons 1 and 2 for Thursday's quiz.", "target": "STUDENT", "createdAt": "2023-10-01"},
        {"id": "ann2", "classId": "c1", "teacherId": "u1", "title": "Parent meeting",
         "content": "Parents are invited on Sunday at 8am.", "target": "PARENT", "createdAt": "2023-09-15"},
    ],
    "progress": [
        {"studentId": "u2", "lessonId": "l1", "completed": True, "lastAccess": "2023-10-01"},
    ],
    "questions": [
        {"id": "q1", "subjectId": "s1", "topicId": "t1", "type": "MULTIPLE_CHOICE", "difficulty": "EASY",
         "content": "Which of these is an INPUT device?", "options": ["Monitor", "Printer", "Keyboard", "Speaker"],
         "correctAnswer": "Keyboard", "explanation": "A keyboard sends data into the computer."},
        {"id": "q2", "subjectId": "s1", "topicId": "t1", "type": "SHORT_ANSWER", "difficulty": "MEDIUM",
         "content": "What does CPU stand for?", "correctAnswer": "Central Processing Unit",
         "explanation": "The central processor."},
        {"id": "q3", "subjectId": "s1", "topicId": "t1", "type": "FILL_IN_THE_BLANK", "difficulty": "MEDIUM",
         "content": "A scanner is an ___ device", "correctAnswer": "input",
         "explanation": "A scanner brings images into the computer."},
        {"id": "q4", "subjectId": "s1", "topicId": "t1", "type": "ORDERING", "difficulty": "HARD",
         "content": "Put the shutdown steps in order:", "options": ["Press Start", "Choose Power", "Choose Shut down"],
         "correctAnswer": ["Press Start", "Choose Power", "Choose Shut down"],
         "explanation": "The standard Windows procedure."},
    ],
}
